"""
Caller identity resolution.

Token issuance lives outside this service; here a request is mapped to a
verified ``Identity(role, user_id)``.

  • With API keys configured (``UNIFORMFLOW_API_KEYS``, entries of the
    form ``key:role:user_id`` separated by commas) the ``X-API-Key``
    header selects the identity.
  • With no keys configured (development mode) the identity is taken
    from the ``X-Actor-Role`` / ``X-Actor-Id`` headers.
"""

from __future__ import annotations

import logging
import os
import secrets
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Security
from fastapi.security import APIKeyHeader

from app.config import config
from app.models.status import Role
from app.storage.directory_store import get_linked_supplier_id

logger = logging.getLogger(__name__)

_api_key_header = APIKeyHeader(name=config.api_key_header, auto_error=False)

_CALLER_ROLES = {Role.admin.value, Role.supplier.value, Role.user.value}


@dataclass(frozen=True)
class Identity:
    role: str
    user_id: str

    @property
    def is_admin(self) -> bool:
        return self.role == Role.admin.value

    @property
    def is_supplier(self) -> bool:
        return self.role == Role.supplier.value


# In production, load from a secrets manager.
_KEYS: dict[str, Identity] = {}


def load_keys(raw: str | None = None) -> None:
    """(Re)load API keys from the UNIFORMFLOW_API_KEYS environment variable."""
    raw = os.environ.get("UNIFORMFLOW_API_KEYS", "") if raw is None else raw
    _KEYS.clear()
    for entry in raw.split(","):
        parts = [p.strip() for p in entry.split(":")]
        if len(parts) != 3 or not all(parts):
            continue
        key, role, user_id = parts
        if role not in _CALLER_ROLES:
            logger.warning("Ignoring API key with unknown role %r", role)
            continue
        _KEYS[key] = Identity(role=role, user_id=user_id)


load_keys()


def _match_key(api_key: str) -> Identity | None:
    for key, identity in _KEYS.items():
        if secrets.compare_digest(api_key, key):
            return identity
    return None


async def require_identity(
    api_key: Annotated[str | None, Security(_api_key_header)],
    x_actor_role: Annotated[str | None, Header()] = None,
    x_actor_id: Annotated[str | None, Header()] = None,
) -> Identity:
    """Dependency: reject requests without a verified identity."""
    if _KEYS:
        identity = _match_key(api_key) if api_key else None
        if identity is None:
            raise HTTPException(401, "Invalid or missing API key")
        return identity

    # No keys configured → development mode
    role = (x_actor_role or "").strip()
    user_id = (x_actor_id or "").strip()
    if not role or not user_id:
        raise HTTPException(401, "Missing caller identity")
    if role not in _CALLER_ROLES:
        raise HTTPException(403, "Forbidden")
    return Identity(role=role, user_id=user_id)


async def require_staff(identity: Annotated[Identity, Depends(require_identity)]) -> Identity:
    """Dependency: admin or supplier only."""
    if not (identity.is_admin or identity.is_supplier):
        raise HTTPException(403, "Forbidden")
    return identity


async def require_admin(identity: Annotated[Identity, Depends(require_identity)]) -> Identity:
    if not identity.is_admin:
        raise HTTPException(403, "Forbidden")
    return identity


def supplier_scope(identity: Identity) -> str | None:
    """Supplier record a supplier-role caller is restricted to (None if unlinked)."""
    if not identity.is_supplier:
        return None
    return get_linked_supplier_id(identity.user_id)
