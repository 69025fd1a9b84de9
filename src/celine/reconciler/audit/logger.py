"""Structured audit logging for executed actions."""

from typing import Any

import logging
import structlog

from celine.reconciler.models import Action


def configure_audit_logging(
    *,
    log_level: str | int,
    json_format: bool,
    service_name: str,
) -> None:
    # Resolve log level via stdlib logging (NOT structlog)
    if isinstance(log_level, str):
        level = getattr(logging, log_level.upper(), logging.INFO)
    else:
        level = int(log_level)

    logging.basicConfig(level=level)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    structlog.contextvars.bind_contextvars(service=service_name)


class ActionAuditLogger:
    """Audit logger for actions executed against Keycloak."""

    def __init__(
        self,
        enabled: bool = True,
        logger: Any = None,
    ):
        """Initialize audit logger.

        Args:
            enabled: Whether audit logging is enabled
            logger: Optional custom logger
        """
        self._enabled = enabled
        self._logger = logger or structlog.get_logger("audit")

    def _base(self, action: Action) -> dict[str, Any]:
        log_data: dict[str, Any] = {
            "event": "reconcile_action",
            "kind": action.kind.value,
            "target": action.target,
            "message": action.msg,
        }
        if action.realm:
            log_data["realm"] = action.realm
        if action.client_id:
            log_data["client_id"] = action.client_id
        if action.previous is not None and action.previous.name != action.target:
            log_data["previous_name"] = action.previous.name
        return log_data

    def log_applied(self, action: Action, dry_run: bool = False) -> None:
        """Log a successfully executed action."""
        if not self._enabled:
            return

        log_data = self._base(action)
        log_data["outcome"] = "dry_run" if dry_run else "applied"
        self._logger.info(**log_data)

    def log_failed(self, action: Action, error: str) -> None:
        """Log an action whose execution failed."""
        if not self._enabled:
            return

        log_data = self._base(action)
        log_data["outcome"] = "failed"
        log_data["error"] = error
        self._logger.error(**log_data)
