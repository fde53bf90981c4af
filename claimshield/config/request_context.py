"""Request-scoped context variables for log correlation."""
from contextvars import ContextVar
from typing import Optional

# Correlation ID for tracing one request through services and outbound VOB calls.
# Set by the correlation middleware in main.py on each incoming request.
correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> Optional[str]:
    """Return the current request's correlation ID, or None if outside a request."""
    return correlation_id_var.get()
