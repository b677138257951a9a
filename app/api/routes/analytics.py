"""
Dashboard analytics endpoint.

The charts flag is read once per request and handed to the engine; when
it is off the response is just ``{"dashboardChartsEnabled": false}``.
Suppliers only ever see reservations of their linked supplier record; a
supplier account without a link gets an empty dashboard.
"""

from __future__ import annotations

import logging
import time
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query

from app.api.middleware.auth import Identity, require_staff, supplier_scope
from app.core.analytics import WindowError, compute_dashboard, resolve_window
from app.models.schemas import DashboardAnalytics, ErrorResponse
from app.storage import reservation_store
from app.storage.settings_store import dashboard_charts_enabled

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get(
    "/analytics",
    response_model=DashboardAnalytics,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)
async def get_analytics(
    identity: Annotated[Identity, Depends(require_staff)],
    days: str | None = None,
    hours: str | None = None,
    bucket: str | None = None,
    date_from: Annotated[str | None, Query(alias="from")] = None,
    date_to: Annotated[str | None, Query(alias="to")] = None,
):
    """CFD, throughput, cycle time and aging WIP for the caller's scope."""
    charts_enabled = dashboard_charts_enabled()
    if not charts_enabled:
        return compute_dashboard([], window=None, charts_enabled=False)

    try:
        window = resolve_window(
            days=days, hours=hours, bucket=bucket, date_from=date_from, date_to=date_to,
        )
    except WindowError as exc:
        raise HTTPException(400, str(exc)) from exc

    t0 = time.perf_counter()

    if identity.is_supplier:
        supplier_id = supplier_scope(identity)
        records = [] if supplier_id is None else reservation_store.find_for_analytics(
            window, supplier_id=supplier_id,
        )
    else:
        records = reservation_store.find_for_analytics(window)

    result = compute_dashboard(records, window=window, charts_enabled=True)

    logger.info(
        "Analytics for %s computed in %.3f s (%d reservations)",
        identity.role, time.perf_counter() - t0, len(records),
    )
    return result
