"""
Logging, middleware and helper tests
"""
import logging
from datetime import datetime

import pytest

from hvac_reports.middleware.tenant import parse_tenant_id
from hvac_reports.utils.datetime_helper import to_iso_string, to_epoch_ms
from hvac_reports.utils.logger import (
    DetailedFormatter,
    get_logger,
    log_data_source_error,
    log_report_execution,
)


def test_module_loggers_live_under_package_root():
    assert get_logger("hvac_reports.services.x").name == "hvac_reports.services.x"
    assert get_logger("tests").name == "hvac_reports.tests"
    assert logging.getLogger("hvac_reports").handlers


def test_data_source_error_carries_context(caplog):
    logger = get_logger("hvac_reports.tests.sources")

    with caplog.at_level(logging.ERROR, logger="hvac_reports"):
        try:
            raise ConnectionError("search down")
        except ConnectionError as e:
            log_data_source_error(logger, "vector", e, table="manuals", query="q" * 600)

    record = caplog.records[-1]
    assert record.levelno == logging.ERROR
    assert "vector source fetch failed" in record.getMessage()
    assert record.extra_context["error_type"] == "ConnectionError"
    assert record.extra_context["table"] == "manuals"
    assert len(record.extra_context["query"]) == 500
    assert record.exc_info is not None


def test_formatter_appends_context():
    record = logging.LogRecord("hvac_reports", logging.INFO, __file__, 1, "executed", None, None)
    record.extra_context = {"rows": 3}

    assert DetailedFormatter("%(message)s").format(record) == "executed\nContext: rows=3"


def test_report_execution_log(caplog):
    logger = get_logger("hvac_reports.tests.execution")

    with caplog.at_level(logging.INFO, logger="hvac_reports"):
        log_report_execution(logger, "r1", "alice", total_rows=3, total_time=12, cached=True)

    record = caplog.records[-1]
    assert record.getMessage() == "Report served from cache: report_id=r1"
    assert record.extra_context == {"user_id": "alice", "rows": 3, "time_ms": 12, "cached": True}


@pytest.mark.parametrize("raw,expected", [
    (None, 0),
    ("", 0),
    ("7", 7),
    (" 12 ", 12),
    ("abc", 0),
    ("-3", 0),
])
def test_parse_tenant_id(raw, expected):
    assert parse_tenant_id(raw) == expected


def test_datetime_helpers():
    assert to_iso_string(None) is None
    assert to_iso_string(datetime(2024, 11, 3, 6, 30, 0, 123)) == "2024-11-03T06:30:00Z"
    assert to_epoch_ms(datetime(1970, 1, 1, 0, 0, 1)) == 1000
