"""Persisted UI preferences (review table columns)."""

from .columns import (
    DEFAULT_COLUMNS,
    ColumnSetting,
    apply_column_settings,
    load_column_settings,
    merge_column_config,
    save_column_settings,
)
from .store import JsonFilePreferenceStore, MemoryPreferenceStore, PreferenceStore

__all__ = [
    "DEFAULT_COLUMNS",
    "ColumnSetting",
    "apply_column_settings",
    "load_column_settings",
    "merge_column_config",
    "save_column_settings",
    "JsonFilePreferenceStore",
    "MemoryPreferenceStore",
    "PreferenceStore",
]
