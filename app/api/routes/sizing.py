"""
Size recommendation endpoints.

Measurements are validated by the request models (present, positive,
finite) before any scoring happens; invalid input never reaches the
engine and is answered with 422.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter

from app.core.size_recommendation import (
    pick_available_size,
    recommend_pants_size,
    recommend_size,
)
from app.models.schemas import (
    ErrorResponse,
    PantsSizingRequest,
    SizeRecommendation,
    SizingRequest,
    SizingResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter()

MANUAL_MESSAGE = "Manual sizing recommended for a more accurate fit."
AUTO_MESSAGE = "Suggestion calculated from the measurements provided."


def _respond(rec: SizeRecommendation, available: list[str] | None) -> SizingResponse:
    return SizingResponse(
        size=rec.size,
        score=rec.score,
        max_score=rec.max_score,
        confidence=rec.confidence,
        message=MANUAL_MESSAGE if rec.is_manual else AUTO_MESSAGE,
        adapted_size=pick_available_size(rec.size, available) if available else None,
    )


@router.post(
    "",
    response_model=SizingResponse,
    response_model_exclude_none=True,
    responses={422: {"model": ErrorResponse}},
)
async def suggest_size(req: SizingRequest):
    """Garment size (PP / P / M / G / GG) for a set of body measurements."""
    rec = recommend_size(req)
    logger.info("Garment suggestion: %s (score %.1f/%.0f)", rec.size, rec.score, rec.max_score)
    return _respond(rec, req.available_sizes)


@router.post(
    "/pants",
    response_model=SizingResponse,
    response_model_exclude_none=True,
    responses={422: {"model": ErrorResponse}},
)
async def suggest_pants_size(req: PantsSizingRequest):
    """Numeric pants size (2 .. 14), adapted to the sizes on offer when given."""
    rec = recommend_pants_size(req)
    logger.info("Pants suggestion: %s (score %.1f/%.0f)", rec.size, rec.score, rec.max_score)
    return _respond(rec, req.available_sizes)
