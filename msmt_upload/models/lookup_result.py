from __future__ import annotations

from dataclasses import dataclass

__all__ = [
    "LookupResult",
]


@dataclass(frozen=True)
class LookupResult:
    """Response of the measuring point lookup service.

    ``found`` is False both for unknown measuring points and for transport
    errors; ``error`` then carries the reason.
    """
    found: bool
    description: str = ""
    position_number: str = ""
    unit_of_measure: str | None = None
    error: str | None = None
