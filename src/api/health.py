"""Health API: liveness plus the active database provider."""

from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(prefix="/api")


@router.get("/health")
async def health(request: Request) -> dict:
    return {
        "status": "ok",
        "database_provider": request.app.state.app_configuration.database_provider,
    }
