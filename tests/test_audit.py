import logging

import pytest

from brio.kernel.audit import (
    AccessDenied,
    ConfigChanged,
    SystemShutdown,
    SystemStartup,
    log_audit,
)


@pytest.mark.parametrize(
    "event",
    [
        SystemStartup("kernel"),
        SystemShutdown("signal"),
        AccessDenied("alice", "tasks"),
        ConfigChanged("server.port", "9090", "8080"),
    ],
)
def test_log_audit_records_event(caplog, event):
    caplog.set_level(logging.INFO, logger="audit")
    log_audit(event)
    records = [r for r in caplog.records if r.name == "audit"]
    assert len(records) == 1
    record = records[0]
    assert record.levelno == logging.INFO
    assert record.audit_event is event
    assert record.getMessage().startswith("Security Audit Event")
    assert type(event).__name__ in record.getMessage()


def test_log_audit_includes_fields(caplog):
    caplog.set_level(logging.INFO, logger="audit")
    log_audit(AccessDenied("mallory", "system_config"))
    message = caplog.records[-1].getMessage()
    assert "mallory" in message
    assert "system_config" in message


def test_log_audit_silent_below_info(caplog):
    caplog.set_level(logging.WARNING, logger="audit")
    log_audit(SystemShutdown("done"))
    assert [r for r in caplog.records if r.name == "audit"] == []