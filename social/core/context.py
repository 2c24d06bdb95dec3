"""Request context management using contextvars.

Each request gets a unique ID plus the acting source (the user or company
performing the call) and an optional trace ID. Every log entry emitted while
the request is being served carries these values.
"""

from contextvars import ContextVar
from typing import Any
from uuid import uuid4


request_id_var: ContextVar[str] = ContextVar("request_id", default="")
source_id_var: ContextVar[str | None] = ContextVar("source_id", default=None)
source_type_var: ContextVar[str | None] = ContextVar("source_type", default=None)
trace_id_var: ContextVar[str | None] = ContextVar("trace_id", default=None)


def generate_request_id() -> str:
    """Generate a new unique request ID."""
    return str(uuid4())


def get_request_id() -> str:
    """Get the current request ID."""
    return request_id_var.get()


def set_request_id(request_id: str | None = None) -> str:
    """Set the request ID for the current context.

    Args:
        request_id: Optional request ID. If not provided, generates a new one.

    Returns:
        The request ID that was set.
    """
    rid = request_id or generate_request_id()
    request_id_var.set(rid)
    return rid


def get_source_id() -> str | None:
    """Get the acting source ID."""
    return source_id_var.get()


def set_source(source_id: str | None, source_type: str | None = None) -> None:
    """Bind the acting source to the current context."""
    source_id_var.set(source_id or None)
    source_type_var.set(source_type if source_id else None)


def get_trace_id() -> str | None:
    """Get the current trace ID."""
    return trace_id_var.get()


def set_trace_id(trace_id: str | None) -> None:
    """Set the trace ID from distributed tracing headers."""
    trace_id_var.set(trace_id)


def get_context() -> dict[str, Any]:
    """Get all non-empty context variables as a dictionary."""
    context: dict[str, Any] = {}

    request_id = get_request_id()
    if request_id:
        context["request_id"] = request_id

    source_id = get_source_id()
    if source_id:
        context["source_id"] = source_id
        context["source_type"] = source_type_var.get()

    trace_id = get_trace_id()
    if trace_id:
        context["trace_id"] = trace_id

    return context


def clear_context() -> None:
    """Clear all context variables.

    Called at the end of each request to prevent context leakage between
    requests served by the same task.
    """
    request_id_var.set("")
    source_id_var.set(None)
    source_type_var.set(None)
    trace_id_var.set(None)
