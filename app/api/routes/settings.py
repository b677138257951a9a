"""
Application settings endpoints.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from app.api.middleware.auth import Identity, require_admin
from app.models.schemas import AppSettings, ErrorResponse, SettingsUpdateRequest
from app.storage.settings_store import load_settings, update_settings

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("", response_model=AppSettings)
async def get_settings():
    return load_settings()


@router.put(
    "",
    response_model=AppSettings,
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)
async def put_settings(
    req: SettingsUpdateRequest,
    identity: Annotated[Identity, Depends(require_admin)],
):
    """Admins only: flip dashboard charts, change the per-family child limit."""
    settings = update_settings(req)
    logger.info("Settings changed by %s", identity.user_id)
    return settings
