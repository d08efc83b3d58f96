from contextvars import ContextVar, Token
from typing import Optional

request_id_context: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def get_request_id() -> Optional[str]:
    """Get the request ID bound to the current task."""
    return request_id_context.get()


def set_request_id(request_id: str) -> Token:
    """Bind a request ID to the current task and return the reset token."""
    return request_id_context.set(request_id)


def reset_request_id(token: Token) -> None:
    request_id_context.reset(token)
