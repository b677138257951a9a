"""
Supplier directory: which supplier record a supplier-role user belongs to.
"""

from __future__ import annotations

import json
import logging

from app.config import config

logger = logging.getLogger(__name__)


def _load() -> dict[str, str]:
    path = config.storage.directory_path
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError):
        logger.warning("Unreadable supplier directory %s", path)
        return {}
    return {str(k): str(v) for k, v in data.items() if v} if isinstance(data, dict) else {}


def get_linked_supplier_id(user_id: str) -> str | None:
    return _load().get(user_id)


def link_supplier(user_id: str, supplier_id: str) -> None:
    links = _load()
    links[user_id] = supplier_id
    path = config.storage.directory_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(links, indent=2))
    logger.info("Linked user %s to supplier %s", user_id, supplier_id)
