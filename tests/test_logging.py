import logging

from ams.core.logging import configure_logging


def test_configure_logging_is_idempotent():
    logger = configure_logging("debug")
    configure_logging("info")

    assert logger is logging.getLogger("ams")
    assert len(logger.handlers) == 1
    assert logger.level == logging.INFO
