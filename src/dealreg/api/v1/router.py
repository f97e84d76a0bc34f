"""V1 API router -- aggregates all v1 endpoint routers."""

from __future__ import annotations

from fastapi import APIRouter

from src.dealreg.api.v1 import admin, auth, deals

router = APIRouter(prefix="/api/v1")

router.include_router(auth.router)
router.include_router(deals.router)
router.include_router(admin.router)
