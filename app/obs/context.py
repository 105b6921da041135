"""Request context helpers using ContextVars.

Holds request-scoped identifiers (request id, caller id) so that log lines
emitted deep inside handlers can be correlated without threading them through
every call.
"""

from contextvars import ContextVar
from typing import Optional


# Public ContextVars (names are stable API)
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
caller_var: ContextVar[Optional[str]] = ContextVar("caller", default=None)


def clear_context() -> None:
    """Reset context variables to defaults."""
    request_id_var.set(None)
    caller_var.set(None)
