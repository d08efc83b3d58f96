from fastapi import APIRouter, Request
from student_registry.utils.responses import ResponseBuilder

health_router = APIRouter()

HEALTH_PATH = "/health"


@health_router.get(HEALTH_PATH)
async def health_check(request: Request):
    """
    Basic health check endpoint

    Not counted by the request throttle.
    """
    config = request.app.state.settings
    return ResponseBuilder.success(
        request=request,
        data={"status": "healthy", "service": config.NAME, "version": config.VERSION},
        message="Service is running",
    )
