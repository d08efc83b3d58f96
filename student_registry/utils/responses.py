from typing import Any, Dict, List, Optional

from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from student_registry.schemas.response_schemas import ApiResponse, ResponseStatus
from student_registry.utils.context import get_request_id


def _request_id(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None) or get_request_id()


def _api_version(request: Request) -> Optional[str]:
    config = getattr(request.app.state, "settings", None)
    return getattr(config, "VERSION", None)


class ResponseBuilder:
    """Builds the JSON responses sent by routes and error handlers"""

    @staticmethod
    def payload(
        request: Request,
        content: Any,
        status_code: int = status.HTTP_200_OK,
    ) -> JSONResponse:
        """Bare JSON body: a record, a list of records or a confirmation"""
        return JSONResponse(status_code=status_code, content=jsonable_encoder(content))

    @classmethod
    def success(
        cls,
        request: Request,
        data: Any = None,
        message: str = "Request successful",
        meta: Optional[Dict[str, Any]] = None,
        status_code: int = status.HTTP_200_OK,
    ) -> JSONResponse:
        envelope = ApiResponse(
            success=True,
            status=ResponseStatus.SUCCESS,
            message=message,
            data=data,
            meta=meta,
            request_id=_request_id(request),
            path=request.url.path,
            version=_api_version(request),
        )
        return cls._render(envelope, status_code)

    @classmethod
    def error(
        cls,
        request: Request,
        message: str = "An error occurred",
        errors: Optional[List[Dict[str, Any]]] = None,
        error_code: Optional[str] = None,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        meta: Optional[Dict[str, Any]] = None,
    ) -> JSONResponse:
        """Error envelope; ``error_code`` lands in ``meta.error_code``"""
        error_meta = dict(meta or {})
        if error_code:
            error_meta["error_code"] = error_code

        envelope = ApiResponse(
            success=False,
            status=ResponseStatus.ERROR,
            message=message,
            errors=errors,
            meta=error_meta or None,
            request_id=_request_id(request),
            path=request.url.path,
            version=_api_version(request),
        )
        return cls._render(envelope, status_code)

    @staticmethod
    def _render(envelope: ApiResponse, status_code: int) -> JSONResponse:
        return JSONResponse(
            status_code=status_code,
            content=jsonable_encoder(envelope.model_dump(exclude_none=True)),
        )
