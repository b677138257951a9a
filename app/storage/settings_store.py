"""
Application settings document.

A single JSON document holds the runtime switches administrators can
flip without a deploy (e.g. ``dashboardChartsEnabled``).  Missing keys
fall back to the configured defaults.
"""

from __future__ import annotations

import json
import logging

from app.config import config
from app.models.schemas import AppSettings, SettingsUpdateRequest

logger = logging.getLogger(__name__)


def _defaults() -> AppSettings:
    return AppSettings(
        dashboard_charts_enabled=config.analytics.dashboard_charts_enabled_default,
        max_children_per_user=config.default_max_children_per_user,
    )


def load_settings() -> AppSettings:
    path = config.storage.settings_path
    if not path.exists():
        return _defaults()
    try:
        stored = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError):
        logger.warning("Unreadable settings document %s, using defaults", path)
        return _defaults()
    merged = _defaults().model_dump(by_alias=True)
    merged.update(stored if isinstance(stored, dict) else {})
    return AppSettings.model_validate(merged)


def update_settings(changes: SettingsUpdateRequest) -> AppSettings:
    """Apply the non-null fields of ``changes`` (upsert)."""
    current = load_settings()
    updated = current.model_copy(update=changes.model_dump(exclude_none=True))

    path = config.storage.settings_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(updated.model_dump(by_alias=True), indent=2))
    logger.info("Settings updated: %s", updated.model_dump(by_alias=True))
    return updated


def dashboard_charts_enabled() -> bool:
    return load_settings().dashboard_charts_enabled
