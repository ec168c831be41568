from __future__ import annotations

from fastapi import APIRouter

from ledger_fx.modules.fx.api import router as fx_router

router = APIRouter()

router.include_router(fx_router, prefix="/api")


@router.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok"}
