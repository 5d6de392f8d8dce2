"""Health check route."""
from fastapi import APIRouter

from stock_tracker.deps import HealthServiceDep
from stock_tracker.schemas import HealthStatus

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthStatus)
async def health(service: HealthServiceDep) -> HealthStatus:
    """Report database, cache and price feed reachability."""
    return await service.check()
