import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from .providers.registry import build_registry
from .routers import payments, provider_webhooks
from .service import MobileMoneyService
from .settings import settings

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(service: Optional[MobileMoneyService] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "mobile_money", None) is None:
            registry = build_registry(settings)
            app.state.mobile_money = MobileMoneyService(registry, default_country_code=settings.DEFAULT_COUNTRY_CODE)
            logger.info("Mobile money providers registered: %s", ", ".join(registry.keys()))
        yield

    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    app.state.mobile_money = service

    app.include_router(payments.router, tags=["Mobile Money"])
    app.include_router(provider_webhooks.router, tags=["Provider Webhooks"])

    @app.get("/health", tags=["Ops"])
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
