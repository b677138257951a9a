"""
UniformFlow FastAPI application.

Endpoints:
  POST  /api/v1/sizing                           — garment size suggestion
  POST  /api/v1/sizing/pants                     — pants size suggestion
  POST  /api/v1/reservations                     — create a reservation
  GET   /api/v1/reservations                     — list reservations (role-scoped)
  PATCH /api/v1/reservations/{id}/status         — change reservation status
  GET   /api/v1/admin/dashboard/analytics        — flow-efficiency dashboard
  GET   /api/v1/admin/settings                   — application settings
  PUT   /api/v1/admin/settings                   — update settings (admin)
  GET   /health                                  — health check
"""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import config
from app.api.routes import analytics, reservations, settings, sizing
from app.models.schemas import HealthResponse

logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format="%(asctime)s  %(name)-30s  %(levelname)-7s  %(message)s",
)

app = FastAPI(
    title=config.app_name,
    version=config.version,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Route registration ─────────────────────────────────────────────────

app.include_router(sizing.router, prefix="/api/v1/sizing", tags=["sizing"])
app.include_router(reservations.router, prefix="/api/v1/reservations", tags=["reservations"])
app.include_router(analytics.router, prefix="/api/v1/admin/dashboard", tags=["analytics"])
app.include_router(settings.router, prefix="/api/v1/admin/settings", tags=["settings"])


@app.get("/health", response_model=HealthResponse)
async def health():
    return HealthResponse(status="ok", version=config.version)


@app.on_event("startup")
async def startup():
    config.storage.reservation_dir.mkdir(parents=True, exist_ok=True)
    logging.getLogger(__name__).info("UniformFlow %s started", config.version)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host=config.host, port=config.port, reload=config.debug)
