"""
Reservation status vocabulary.

The operational flow is

    aguardando → recebida → em-processamento → finalizada → entregue

with ``cancelada`` reachable from any non-terminal status.  Older records
carry statuses from a previous vocabulary (``em-producao``, ``enviado``);
every read boundary passes raw values through :func:`normalize_status`.
"""

from __future__ import annotations

from enum import Enum


class ReservationStatus(str, Enum):
    aguardando = "aguardando"
    recebida = "recebida"
    em_processamento = "em-processamento"
    finalizada = "finalizada"
    entregue = "entregue"
    cancelada = "cancelada"


class EventType(str, Enum):
    created = "created"
    status_changed = "status_changed"
    cancelled = "cancelled"


class Role(str, Enum):
    admin = "admin"
    supplier = "supplier"
    user = "user"
    system = "system"


# Canonical column order for dashboards
OPERATIONS_STATUSES: tuple[ReservationStatus, ...] = (
    ReservationStatus.aguardando,
    ReservationStatus.recebida,
    ReservationStatus.em_processamento,
    ReservationStatus.finalizada,
    ReservationStatus.entregue,
    ReservationStatus.cancelada,
)

TERMINAL_STATUSES: frozenset[ReservationStatus] = frozenset({
    ReservationStatus.entregue,
    ReservationStatus.cancelada,
})

WIP_STATUSES: tuple[ReservationStatus, ...] = tuple(
    s for s in OPERATIONS_STATUSES if s not in TERMINAL_STATUSES
)

LEGACY_STATUS_ALIASES: dict[str, ReservationStatus] = {
    "em-producao": ReservationStatus.em_processamento,
    "enviado": ReservationStatus.entregue,
}

_BY_VALUE = {s.value: s for s in ReservationStatus}


def normalize_status(value: object) -> ReservationStatus:
    """Map any stored status value onto the current vocabulary.

    Legacy aliases translate to their replacements; anything else that is
    not a current status becomes ``aguardando``.
    """
    if isinstance(value, ReservationStatus):
        return value
    if isinstance(value, str):
        if value in LEGACY_STATUS_ALIASES:
            return LEGACY_STATUS_ALIASES[value]
        if value in _BY_VALUE:
            return _BY_VALUE[value]
    return ReservationStatus.aguardando


def parse_status(value: object) -> ReservationStatus | None:
    """Strict parse for write paths: current values only, no fallback."""
    if isinstance(value, ReservationStatus):
        return value
    if isinstance(value, str):
        return _BY_VALUE.get(value.strip())
    return None


def is_terminal(status: ReservationStatus) -> bool:
    return status in TERMINAL_STATUSES
