"""API routes."""

from rota_engine.api.routes.health import router as health_router
from rota_engine.api.routes.pay_runs import router as pay_runs_router
from rota_engine.api.routes.rates import router as rates_router
from rota_engine.api.routes.schedule import router as schedule_router

__all__ = ["health_router", "pay_runs_router", "rates_router", "schedule_router"]
