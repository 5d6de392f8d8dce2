"""FastAPI dependency injection: app.state holds singletons; Depends() resolves them.

No external DI container. The lifespan (main.py) builds the stores, provider
and services once and attaches them to app.state; these getters are used by
Depends().
"""
from typing import Annotated

from fastapi import Depends, Request

from stock_tracker.services import StockService
from stock_tracker.services.health import HealthService


def get_stock_service(request: Request) -> StockService:
    """Resolve StockService from app.state (created at startup)."""
    return request.app.state.stock_service


def get_health_service(request: Request) -> HealthService:
    """Resolve HealthService from app.state."""
    return request.app.state.health_service


# Type aliases for route injection
StockServiceDep = Annotated[StockService, Depends(get_stock_service)]
HealthServiceDep = Annotated[HealthService, Depends(get_health_service)]
