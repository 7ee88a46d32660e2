"""
Structured logging for the VR app store backend.

Every log line carries a trace id. The HTTP middleware binds one per
request (or reuses the caller's X-Trace-Id), so a scrape can be followed
from URL routing through page fetch, field extraction, confidence
classification and the field-by-field merge into the catalog store.
"""
import uuid
import logging
import structlog
from contextvars import ContextVar
from typing import Any, Dict, List, Optional

from vrstore.config import config

# Trace id of the current request or batch
trace_id_var: ContextVar[str] = ContextVar("trace_id", default="")


def get_trace_id() -> str:
    """Current trace id; one is generated on first use outside a request."""
    trace_id = trace_id_var.get()
    if not trace_id:
        trace_id = str(uuid.uuid4())[:8]
        trace_id_var.set(trace_id)
    return trace_id


def set_trace_id(trace_id: Optional[str] = None) -> str:
    """Bind ``trace_id`` (or a fresh one) to the current context and return it."""
    new_trace_id = trace_id or str(uuid.uuid4())[:8]
    trace_id_var.set(new_trace_id)
    return new_trace_id


def add_trace_id(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    event_dict["trace_id"] = get_trace_id()
    return event_dict


def configure_logging():
    """Configure structlog from LOG_LEVEL and LOG_FORMAT (json or console)."""
    processors = [
        structlog.contextvars.merge_contextvars,
        add_trace_id,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if config.LOG_FORMAT == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, config.LOG_LEVEL.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    return structlog.get_logger(name)


class LayerLogger:
    """
    Logger bound to one component of the store backend.

    The router, fetcher, extractors, confidence classifier, merge engine,
    batch orchestrator and catalog stores all log through this, tagging each
    event with ``layer`` so one trace reads as a pipeline:

    - ``decision_made``: a routing, retry or batch choice and its reason
    - ``action_<status>``: start/finish of a scrape, extract, merge or write
    - ``fallback_triggered``: a store-default value used in place of page data
    - ``error_occurred``: a failure that was turned into an outcome or raised
    - ``page_fetch``, ``record_extracted``, ``field_merged``: per-step detail
    """

    def __init__(self, layer_name: str):
        self.layer_name = layer_name
        self.logger = get_logger(layer_name)

    def log_decision(
        self,
        decision: str,
        reason: str,
        url: Optional[str] = None,
        **extra
    ):
        """Log a choice this component made, e.g. which extractor handles a URL."""
        self.logger.info(
            "decision_made",
            layer=self.layer_name,
            decision=decision,
            reason=reason,
            url=url,
            **extra
        )

    def log_action(
        self,
        action: str,
        status: str = "started",
        **extra
    ):
        self.logger.info(
            f"action_{status}",
            layer=self.layer_name,
            action=action,
            **extra
        )

    def log_fallback(
        self,
        from_source: str,
        to_source: str,
        reason: str,
        **extra
    ):
        """Log a value taken from a default rather than the page (e.g. category)."""
        self.logger.warning(
            "fallback_triggered",
            layer=self.layer_name,
            from_source=from_source,
            to_source=to_source,
            reason=reason,
            **extra
        )

    def log_error(
        self,
        error: str,
        error_type: str = "unknown",
        **extra
    ):
        """Log a failure; ``error_type`` matches the outcome's errorType where there is one."""
        self.logger.error(
            "error_occurred",
            layer=self.layer_name,
            error=error,
            error_type=error_type,
            **extra
        )

    def log_fetch(
        self,
        url: str,
        status_code: Optional[int],
        result: str,
        attempt: int = 1,
        **extra
    ):
        """Log the result of fetching a storefront page."""
        self.logger.info(
            "page_fetch",
            layer=self.layer_name,
            url=url,
            status_code=status_code,
            result=result,
            attempt=attempt,
            **extra
        )

    def log_extraction(
        self,
        store: str,
        fields_present: List[str],
        fields_missing: List[str],
        **extra
    ):
        """Log which fields an extractor managed to fill."""
        self.logger.info(
            "record_extracted",
            layer=self.layer_name,
            store=store,
            fields_present=fields_present,
            fields_missing=fields_missing,
            **extra
        )

    def log_field_merge(
        self,
        field: str,
        decision: str,
        changed: bool,
        **extra
    ):
        """Log the decision applied to one field while merging into a catalog entry."""
        self.logger.info(
            "field_merged",
            layer=self.layer_name,
            field=field,
            decision=decision,
            changed=changed,
            **extra
        )


# Configured once, on first import
configure_logging()
