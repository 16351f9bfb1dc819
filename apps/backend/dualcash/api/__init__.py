"""Router registration."""

from fastapi import FastAPI

from .missions_router import router as missions_router
from .rates_router import router as rates_router
from .recurring_router import router as recurring_router
from .transactions_router import router as transactions_router


def register_routers(app: FastAPI) -> None:
    """Attach all API routes to the FastAPI application."""

    app.include_router(rates_router, prefix="/api")
    app.include_router(transactions_router, prefix="/api")
    app.include_router(missions_router, prefix="/api")
    app.include_router(recurring_router, prefix="/api")
