"""Security audit events written to a dedicated log channel."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Union

audit_logger = logging.getLogger("audit")


@dataclass(frozen=True)
class SystemStartup:
    component: str


@dataclass(frozen=True)
class SystemShutdown:
    reason: str


@dataclass(frozen=True)
class AccessDenied:
    user: str
    resource: str


@dataclass(frozen=True)
class ConfigChanged:
    key: str
    old_val: str
    new_val: str


AuditEvent = Union[SystemStartup, SystemShutdown, AccessDenied, ConfigChanged]


def log_audit(event: AuditEvent) -> None:
    """Log an audit event on the ``audit`` logger.

    The event itself is attached to the record as ``audit_event`` so handlers
    can route or serialize it.
    """
    audit_logger.info("Security Audit Event: %r", event, extra={"audit_event": event})