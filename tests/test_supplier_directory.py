from ams.db.external.scm import ScmBusinessPartner
from ams.services.suppliers.directory import SupplierDirectory


def seed(scm_db):
    scm_db.add_all([
        ScmBusinessPartner(bp_code="SUP01", bp_name="PT Sinar Baja", bp_role_desc="Supplier", bp_status_desc="Active"),
        ScmBusinessPartner(bp_code="SUP02", bp_name="PT Lama", bp_role_desc="Supplier", bp_status_desc="Inactive"),
        ScmBusinessPartner(bp_code="CUS01", bp_name="Customer", bp_role_desc="Customer", bp_status_desc="Active"),
    ])
    scm_db.commit()


def test_lookup_and_fallback(session_factories, scm_db):
    seed(scm_db)
    directory = SupplierDirectory(session_factories.scm)

    assert directory.get("SUP01").name == "PT Sinar Baja"
    assert directory.name_for("SUP01") == "PT Sinar Baja"
    assert directory.name_for("UNKNOWN") == "UNKNOWN"


def test_entries_are_cached_until_invalidated(session_factories, scm_db):
    seed(scm_db)
    directory = SupplierDirectory(session_factories.scm, ttl_seconds=3600)
    assert directory.name_for("SUP01") == "PT Sinar Baja"

    scm_db.get(ScmBusinessPartner, "SUP01").bp_name = "PT Sinar Baja Abadi"
    scm_db.commit()
    assert directory.name_for("SUP01") == "PT Sinar Baja"

    directory.invalidate("SUP01")
    assert directory.name_for("SUP01") == "PT Sinar Baja Abadi"


def test_refresh_loads_active_suppliers_only(session_factories, scm_db):
    seed(scm_db)
    directory = SupplierDirectory(session_factories.scm)

    assert directory.refresh() == 1
