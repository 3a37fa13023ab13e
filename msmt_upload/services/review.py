from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import replace

import pandas as pd

from ..models.canonical_row import CanonicalRow
from ..preferences.columns import ColumnSetting

logger = logging.getLogger(__name__)

"""Review table: canonical rows rendered as text using column settings."""

__all__ = [
    "ReviewTable",
]

DISPLAY_KEYS = frozenset(CanonicalRow(row_number=0).as_display_dict())


def _parse_width(width: str) -> int | None:
    digits = "".join(ch for ch in width if ch.isdigit())
    return int(digits) if digits else None


def _fit(value: object, width: int | None) -> str:
    text = "" if value is None else str(value)
    if width is None or width < 2 or len(text) <= width:
        return text
    return text[: width - 1] + "…"


class ReviewTable:
    """Row table that only renders once column settings are applied."""

    def __init__(self, rows: Sequence[CanonicalRow]) -> None:
        self.rows = list(rows)
        self.columns: list[ColumnSetting] = []

    def apply_settings(self, settings: Iterable[ColumnSetting]) -> bool:
        """Accept the settings whose key maps to a row field.

        Returns False when none does (nothing to render yet).
        """
        usable = [c for c in settings if c.key in DISPLAY_KEYS]
        if not usable:
            return False
        self.columns = usable
        return True

    def hide(self, column_ids: Iterable[str]) -> None:
        hidden = set(column_ids)
        unknown = hidden - {c.id for c in self.columns}
        if unknown:
            logger.warning("unknown column id(s): %s", ", ".join(sorted(unknown)))
        self.columns = [
            replace(c, visible=c.visible and c.id not in hidden)
            for c in self.columns
        ]

    def to_frame(self) -> pd.DataFrame:
        visible = [c for c in self.columns if c.visible]
        data = []
        for row in self.rows:
            values = row.as_display_dict()
            data.append({c.label: _fit(values[c.key], _parse_width(c.width)) for c in visible})
        return pd.DataFrame(data, columns=[c.label for c in visible])

    def render(self) -> str:
        if not self.rows:
            return "(no rows)"
        return self.to_frame().to_string(index=False)
