from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from ledger_fx.api.router import router as api_router
from ledger_fx.bootstrap import bootstrap
from ledger_fx.core.logging import RequestContextMiddleware


def create_app() -> FastAPI:
    @asynccontextmanager
    async def lifespan(_: FastAPI):
        bootstrap()
        yield

    app = FastAPI(title="Ledger FX", version="0.1.0", lifespan=lifespan)
    app.add_middleware(RequestContextMiddleware)
    app.include_router(api_router)
    return app


app = create_app()
