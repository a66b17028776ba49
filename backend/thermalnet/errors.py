"""Error types raised by the thermal network core.

Every error carries a ``kind`` discriminant and a structured ``detail``
payload so callers can branch on the failure without parsing messages.
"""

from typing import Any


class ThermalNetworkError(Exception):
    """Base class for all thermal network errors."""

    kind: str = "thermal_network"

    def __init__(self, message: str, **detail: Any) -> None:
        super().__init__(message)
        self.message = message
        self.detail: dict[str, Any] = detail

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "message": self.message, "detail": dict(self.detail)}


class ValidationError(ThermalNetworkError):
    """A network or settings precondition was violated.

    Detail keys:
        entity: 'network', 'settings', 'node', 'edge' or 'measurement'
        index: Position of the offending entity in its input list
        id: Id of the offending entity (if any)
        name: Display name of the offending node (if any)
        field: Offending field name
        constraint: 'empty', 'non_finite', 'non_positive', 'negative',
            'out_of_range', 'dangling_reference' or 'duplicate_id'
    """

    kind = "validation"


class EstimationError(ThermalNetworkError):
    """Parameter estimation could not be started or evaluated."""

    kind = "estimation"
