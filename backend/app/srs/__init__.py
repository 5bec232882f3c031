"""SRS helpers (quality estimate, SM-2 transition, batch selection)."""

from .quality import estimate_quality
from .selection import SelectedItem, is_due, level_tag, select_study_batch
from .sm2 import SM2Result, SM2State, apply_sm2
from .time import (
    utc_now,
    utc_now_iso,
    utc_datetime_to_iso_z,
    parse_iso_z,
    add_days_iso,
)

__all__ = [
    "estimate_quality",
    "SelectedItem",
    "is_due",
    "level_tag",
    "select_study_batch",
    "SM2Result",
    "SM2State",
    "apply_sm2",
    "utc_now",
    "utc_now_iso",
    "utc_datetime_to_iso_z",
    "parse_iso_z",
    "add_days_iso",
]
