from typing import Iterable, Optional


def _normalize_origin(origin: str) -> str:
    return origin.strip().rstrip("/").lower()


class OriginGate:
    """Allow-list of browser origins permitted to call the API"""

    def __init__(self, allowed_origins: Iterable[str]):
        self.allowed_origins = frozenset(
            _normalize_origin(origin) for origin in allowed_origins if origin.strip()
        )

    def is_allowed(self, origin: Optional[str]) -> bool:
        # No Origin header means a same-origin or non-browser client; let it through
        if not origin:
            return True
        return _normalize_origin(origin) in self.allowed_origins
