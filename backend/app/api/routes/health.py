"""GET /health — liveness probe."""

from fastapi import APIRouter

router = APIRouter()


@router.get("/health")
def health() -> dict[str, str]:
    """Return a static OK payload."""
    return {"status": "ok"}
