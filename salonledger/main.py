import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from salonledger.core.config import settings
import salonledger.models  # noqa: F401  # force model registration

from salonledger.api.v1.reports import router as reports_router
from salonledger.api.v1.finance import router as finance_router
from salonledger.api.v1.sales import router as sales_router


def create_application() -> FastAPI:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title="SalonLedger API")

    # CORS: local back-office frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    def root():
        return {"status": "ok", "service": "salonledger", "environment": settings.ENVIRONMENT}

    # Routers
    app.include_router(reports_router, prefix="/api/v1")
    app.include_router(finance_router, prefix="/api/v1")
    app.include_router(sales_router, prefix="/api/v1")

    return app


app = create_application()
