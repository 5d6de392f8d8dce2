"""API routers for stock tracking and health checks."""
from stock_tracker.routers.health import router as health_router
from stock_tracker.routers.stocks import router as stocks_router

__all__ = ["health_router", "stocks_router"]
