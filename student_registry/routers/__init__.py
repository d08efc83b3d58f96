from .students import students_router
from .health import health_router, HEALTH_PATH

__all__ = ["students_router", "health_router", "HEALTH_PATH"]
