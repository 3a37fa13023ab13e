from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass, replace
from typing import Any

from ..services.retry import call_with_retry
from .store import PreferenceStore

logger = logging.getLogger(__name__)

"""Review table column personalization.

Saved settings live in a PreferenceStore under ``MP_COL_SETTINGS`` next to a
schema version key. A version change discards the saved settings. Loading
merges saved settings into the defaults:
- default structure (id / key / label) always wins
- visibility is forced back to True
- a saved non-blank width is kept
- saved entries unknown to the defaults are kept at the end
"""

__all__ = [
    "COLUMN_SETTINGS_KEY",
    "COLUMN_SETTINGS_VERSION_KEY",
    "CURRENT_SCHEMA_VERSION",
    "DEFAULT_COLUMNS",
    "ColumnSetting",
    "merge_column_config",
    "ensure_schema_version",
    "load_column_settings",
    "save_column_settings",
    "apply_column_settings",
]

COLUMN_SETTINGS_KEY = "MP_COL_SETTINGS"
COLUMN_SETTINGS_VERSION_KEY = "MP_COL_SETTINGS_VER"
CURRENT_SCHEMA_VERSION = "v2"


@dataclass(frozen=True)
class ColumnSetting:
    """One review table column.

    ``key`` is the CanonicalRow display key, ``width`` a character count
    (kept as string, as saved).
    """
    id: str
    key: str
    label: str
    visible: bool = True
    width: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @staticmethod
    def from_dict(data: dict[str, Any]) -> ColumnSetting:
        return ColumnSetting(
            id=str(data["id"]),
            key=str(data.get("key") or ""),
            label=str(data.get("label") or data["id"]),
            visible=bool(data.get("visible", True)),
            width=str(data.get("width") or ""),
        )


DEFAULT_COLUMNS: tuple[ColumnSetting, ...] = (
    ColumnSetting("colRow", "RowNumber", "Row", True, "4"),
    ColumnSetting("colMeasuringPoint", "MeasuringPoint", "Measuring Point", True, "16"),
    ColumnSetting("colDescription", "Description", "Description", True, "24"),
    ColumnSetting("colPosition", "PositionNumber", "Position Number", True, "10"),
    ColumnSetting("colCounter", "Reading", "Counter/Reading", True, "12"),
    ColumnSetting("colDifference", "Difference", "Difference", True, "10"),
    ColumnSetting("colUoM", "UoM", "UoM", True, "4"),
    ColumnSetting("colPostingDate", "PostingDate", "Posting Date", True, "30"),
    ColumnSetting("colText", "Text", "Text", True, "30"),
    ColumnSetting("colReadyBy", "ReadBy", "Read By", True, "12"),
    ColumnSetting("colStatus", "Status", "Status", True, "10"),
)


def merge_column_config(saved: Any, defaults: tuple[ColumnSetting, ...] | list[ColumnSetting]) -> list[ColumnSetting]:
    """Merge saved column settings into the defaults (pure).

    ``saved`` is the decoded JSON value; anything that is not a list yields
    the defaults unchanged.
    """
    if not isinstance(saved, list):
        return list(defaults)

    saved_by_id: dict[str, dict[str, Any]] = {}
    for s in saved:
        if isinstance(s, dict) and s.get("id"):
            saved_by_id[str(s["id"])] = s

    merged: list[ColumnSetting] = []
    for default in defaults:
        s = saved_by_id.get(default.id)
        if s is None:
            merged.append(default)
            continue
        width = str(s.get("width") or "").strip()
        merged.append(replace(default, visible=True, width=width or default.width))

    known = {c.id for c in merged}
    for col_id, s in saved_by_id.items():
        if col_id not in known:
            # ユーザーデータは保持
            merged.append(ColumnSetting.from_dict(s))
            known.add(col_id)
    return merged


def _dumps(settings: list[ColumnSetting]) -> str:
    return json.dumps([c.to_dict() for c in settings], ensure_ascii=False)


def ensure_schema_version(store: PreferenceStore) -> bool:
    """Drop saved settings written under another schema version.

    Returns:
        True if saved settings were discarded
    """
    if store.get(COLUMN_SETTINGS_VERSION_KEY) == CURRENT_SCHEMA_VERSION:
        return False
    store.remove(COLUMN_SETTINGS_KEY)
    store.set(COLUMN_SETTINGS_VERSION_KEY, CURRENT_SCHEMA_VERSION)
    logger.debug("column settings reset for schema %s", CURRENT_SCHEMA_VERSION)
    return True


def load_column_settings(
    store: PreferenceStore,
    defaults: tuple[ColumnSetting, ...] | list[ColumnSetting] = DEFAULT_COLUMNS,
) -> list[ColumnSetting]:
    """Load, merge and write back column settings.

    Missing or corrupt saved data is replaced by the defaults.
    """
    ensure_schema_version(store)
    raw = store.get(COLUMN_SETTINGS_KEY)
    if not raw:
        store.set(COLUMN_SETTINGS_KEY, _dumps(list(defaults)))
        return list(defaults)
    try:
        saved = json.loads(raw)
    except ValueError:
        saved = None
    merged = merge_column_config(saved, defaults)
    merged_raw = _dumps(merged)
    if merged_raw != raw:
        store.set(COLUMN_SETTINGS_KEY, merged_raw)
    return merged


def save_column_settings(store: PreferenceStore, settings: list[ColumnSetting]) -> None:
    store.set(COLUMN_SETTINGS_VERSION_KEY, CURRENT_SCHEMA_VERSION)
    store.set(COLUMN_SETTINGS_KEY, _dumps(settings))


def apply_column_settings(
    apply: Callable[[list[ColumnSetting]], bool],
    settings: list[ColumnSetting],
    *,
    max_attempts: int = 8,
    delay: float = 0.15,
    backoff: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """Hand settings to a target that may not be ready yet.

    ``apply`` returns True once the target accepted the settings; it is
    retried a bounded number of times.
    """
    ok = call_with_retry(
        lambda: apply(settings),
        max_attempts=max_attempts,
        delay=delay,
        backoff=backoff,
        sleep=sleep,
    )
    if not ok:
        logger.warning("column settings not applied after %d attempts", max_attempts)
    return ok
