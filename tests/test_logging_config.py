import logging

import structlog

from teleform.logging_config import configure_logging


def test_azure_http_logging_is_quiet_by_default():
    configure_logging("INFO")

    assert logging.getLogger("azure.identity").level == logging.WARNING
    assert logging.getLogger("azure.core.pipeline.policies.http_logging_policy").level == (
        logging.WARNING
    )


def test_debug_enables_azure_http_logging():
    configure_logging("debug")

    assert logging.getLogger("azure.mgmt").level == logging.DEBUG


def test_structlog_events_reach_stdlib_logging(caplog):
    configure_logging("INFO")
    logger = structlog.get_logger("teleform.export.test")

    with caplog.at_level(logging.INFO, logger="teleform.export.test"):
        logger.info("export_finished", container="rg-demo")

    assert '"event": "export_finished"' in caplog.text
    assert '"container": "rg-demo"' in caplog.text
