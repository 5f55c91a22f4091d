"""
REST API main application.
Entry point for the FastAPI REST server.
"""

from fastapi import FastAPI

from shared.config.settings import settings
from shared.infrastructure.correlation import CorrelationIdMiddleware
from rest_api.core.cors import configure_cors
from rest_api.core.lifespan import lifespan
from rest_api.core.middlewares import register_middlewares
from rest_api.routers.kitchen import router as kitchen_router
from rest_api.routers.orders import router as orders_router
from rest_api.routers.public import health_router
from rest_api.routers.reports import router as reports_router
from rest_api.routers.withdrawals import menu_router, router as withdrawals_router


app = FastAPI(
    title="Counter Ops REST API",
    description="Order lifecycle, kitchen queue and business-day ledger for a single venue",
    version="0.1.0",
    lifespan=lifespan,
)

register_middlewares(app)
configure_cors(app)
# Added last so it runs first and every log line carries the request id
app.add_middleware(CorrelationIdMiddleware)


# =============================================================================
# Include Routers
# =============================================================================

app.include_router(health_router)
app.include_router(orders_router)
app.include_router(withdrawals_router)
app.include_router(menu_router)
app.include_router(reports_router)
app.include_router(kitchen_router)


# =============================================================================
# Development entry point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "rest_api.main:app",
        host="0.0.0.0",
        port=settings.rest_api_port,
        reload=True,
    )
