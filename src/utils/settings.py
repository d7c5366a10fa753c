"""Analysis settings loaded from ``configs/analysis.yml``."""
from __future__ import annotations

from dataclasses import dataclass, fields
from functools import lru_cache
from pathlib import Path

import yaml

from utils.io import get_paths, logger

_FIELD_TYPES = {
    "raw_file": str,
    "raw_encoding": str,
    "cancellation_prefix": str,
    "churn_threshold_days": int,
    "drop_non_positive_lines": bool,
    "drop_duplicate_lines": bool,
    "max_cohort_index": int,
}


@dataclass(frozen=True)
class AnalysisSettings:
    raw_file: str = "online_retail.csv"
    raw_encoding: str = "ISO-8859-1"
    cancellation_prefix: str = "C"
    churn_threshold_days: int = 90
    drop_non_positive_lines: bool = True
    drop_duplicate_lines: bool = True
    max_cohort_index: int | None = None

    def __post_init__(self) -> None:
        for name, expected in _FIELD_TYPES.items():
            value = getattr(self, name)
            if name == "max_cohort_index" and value is None:
                continue
            # bool is an int subclass; only the boolean flags accept it
            if isinstance(value, bool) and expected is not bool:
                raise ValueError(f"{name} must be {expected.__name__}, got bool")
            if not isinstance(value, expected):
                raise ValueError(f"{name} must be {expected.__name__}, got {type(value).__name__}")
        if not self.cancellation_prefix:
            raise ValueError("cancellation_prefix must not be empty")
        if self.churn_threshold_days < 0:
            raise ValueError("churn_threshold_days must be >= 0")
        if self.max_cohort_index is not None and self.max_cohort_index < 0:
            raise ValueError("max_cohort_index must be >= 0 when set")


@lru_cache(maxsize=4)
def load_settings(path: str | Path | None = None) -> AnalysisSettings:
    config_path = Path(path) if path else get_paths().configs / "analysis.yml"
    if not config_path.exists():
        logger.warning("No analysis config at %s; using defaults", config_path)
        return AnalysisSettings()

    with config_path.open("r", encoding="utf-8") as fh:
        config = yaml.safe_load(fh) or {}
    section = config.get("analysis", {}) or {}

    known = {f.name for f in fields(AnalysisSettings)}
    unknown = sorted(set(section) - known)
    if unknown:
        raise ValueError(f"Unknown analysis settings in {config_path}: {unknown}")
    return AnalysisSettings(**section)


__all__ = ["AnalysisSettings", "load_settings"]
