"""Audit logging package."""

from .logger import ActionAuditLogger, configure_audit_logging

__all__ = [
    "ActionAuditLogger",
    "configure_audit_logging",
]
