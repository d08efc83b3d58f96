from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field

from student_registry.schemas.camel_base_model import CamelCaseBaseModel


class ResponseStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ApiResponse(CamelCaseBaseModel):
    """
    Envelope used for every error and for service endpoints such as /health.

    Record endpoints answer with bare records instead, so the registrar front
    end can consume them directly. Keys are dumped in snake_case
    (``request_id``, ``meta.error_code``).
    """

    success: bool
    status: ResponseStatus
    message: str
    data: Optional[Any] = None
    errors: Optional[List[Dict[str, Any]]] = Field(
        default=None, description="One entry per offending field"
    )
    meta: Optional[Dict[str, Any]] = Field(
        default=None, description="error_code and other machine-readable details"
    )
    request_id: Optional[str] = None
    path: Optional[str] = None
    timestamp: str = Field(default_factory=_utc_now)
    version: Optional[str] = None
