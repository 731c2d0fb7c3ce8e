from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

from sqlalchemy.orm import Session

from ams import config
from ams.db.external.scm import ScmBusinessPartner

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SupplierInfo:
    bp_code: str
    name: str
    status: str | None = None
    phone: str | None = None
    address: str | None = None


class SupplierDirectory:
    """Read-through cache of supplier display data keyed by supplier code.

    `get()` loads a missing or stale entry from SCM on demand; `refresh()`
    reloads every active supplier; `invalidate()` drops one entry or all of them.
    """

    def __init__(self, session_factory: Callable[[], Session], ttl_seconds: int | None = None):
        self._session_factory = session_factory
        self._ttl = config.SUPPLIER_CACHE_TTL if ttl_seconds is None else ttl_seconds
        self._entries: dict[str, tuple[SupplierInfo | None, float]] = {}
        self._lock = threading.Lock()

    def _fresh(self, loaded_at: float) -> bool:
        return self._ttl <= 0 or (time.monotonic() - loaded_at) < self._ttl

    def get(self, bp_code: str) -> SupplierInfo | None:
        with self._lock:
            cached = self._entries.get(bp_code)
        if cached is not None and self._fresh(cached[1]):
            return cached[0]

        with self._session_factory() as db:
            partner = db.get(ScmBusinessPartner, bp_code)
            info = _to_info(partner) if partner is not None else None
        with self._lock:
            self._entries[bp_code] = (info, time.monotonic())
        return info

    def name_for(self, bp_code: str) -> str:
        info = self.get(bp_code)
        return info.name if info is not None else bp_code

    def refresh(self) -> int:
        with self._session_factory() as db:
            partners = (db.query(ScmBusinessPartner)
                        .filter(ScmBusinessPartner.bp_role_desc == "Supplier",
                                ScmBusinessPartner.bp_status_desc == "Active")
                        .all())
            infos = [_to_info(p) for p in partners]
        loaded_at = time.monotonic()
        with self._lock:
            self._entries = {i.bp_code: (i, loaded_at) for i in infos}
        logger.info("Supplier directory refreshed with %d suppliers", len(infos))
        return len(infos)

    def invalidate(self, bp_code: str | None = None) -> None:
        with self._lock:
            if bp_code is None:
                self._entries.clear()
            else:
                self._entries.pop(bp_code, None)


def _to_info(partner: ScmBusinessPartner) -> SupplierInfo:
    return SupplierInfo(
        bp_code=partner.bp_code,
        name=partner.bp_name or partner.bp_code,
        status=partner.bp_status_desc,
        phone=partner.bp_phone,
        address=partner.adr_line_1,
    )


_directory: SupplierDirectory | None = None


def get_supplier_directory() -> SupplierDirectory:
    global _directory
    if _directory is None:
        from ams.db.session import ScmSessionLocal
        _directory = SupplierDirectory(ScmSessionLocal)
    return _directory
