"""Quick QC checks for GOLD parquet outputs."""
from __future__ import annotations

import sys
from pathlib import Path
from typing import Dict, Iterable, List

import numpy as np
import pandas as pd

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from utils.io import get_paths, logger  # noqa: E402

PATHS = get_paths()
RATE_TOLERANCE = 0.011


def _read_parquet_map() -> Dict[str, pd.DataFrame]:
    gold_dir = PATHS.gold
    data = {}
    for parquet in gold_dir.glob("*.parquet"):
        df = pd.read_parquet(parquet)
        data[parquet.stem] = df
    return data


def _check_nan_inf(name: str, df: pd.DataFrame, columns: Iterable[str]) -> None:
    for col in columns:
        if col not in df.columns:
            continue
        series = pd.to_numeric(df[col], errors="coerce")
        n_nan = series.isna().sum()
        n_inf = np.isinf(series).sum()
        if n_nan or n_inf:
            logger.warning("[%s] Column '%s' has NaN=%s, Inf=%s", name, col, n_nan, n_inf)


def check_first_month_retention(matrix: pd.DataFrame) -> List[str]:
    first = matrix.loc[matrix["cohort_index"] == 0]
    bad = first.loc[(first["retention_rate"].astype(float) - 100.0).abs() > 1e-9]
    return [f"cohort {c} retains {r}% at index 0" for c, r in zip(bad["cohort_month"], bad["retention_rate"])]


def check_cohort_quality(quality: pd.DataFrame) -> List[str]:
    total = quality["one_time_buyers"] + quality["repeat_buyers"]
    bad = quality.loc[total != quality["cohort_size"]]
    return [f"cohort {c} buyers do not add up to cohort size" for c in bad["cohort_month"]]


def check_cohort_sizes(matrix: pd.DataFrame, quality: pd.DataFrame) -> List[str]:
    sizes = matrix.groupby("cohort_month")["original_size"].first()
    other = quality.set_index("cohort_month")["cohort_size"]
    diff = sizes.astype(int).sub(other.astype(int), fill_value=0)
    return [f"cohort {c} size differs between tables by {d}" for c, d in diff[diff != 0].items()]


def check_churn_split(churn: pd.DataFrame) -> List[str]:
    row = churn.iloc[0]
    if pd.isna(row["churn_rate"]):
        return []
    total = float(row["churn_rate"]) + float(row["active_rate"])
    if abs(total - 100.0) > RATE_TOLERANCE:
        return [f"churn_rate + active_rate = {total:.2f}"]
    return []


def run_checks(data: Dict[str, pd.DataFrame]) -> List[str]:
    issues: List[str] = []
    matrix = data.get("retention_matrix")
    quality = data.get("cohort_quality")
    if matrix is not None:
        issues += check_first_month_retention(matrix)
    if quality is not None:
        issues += check_cohort_quality(quality)
    if matrix is not None and quality is not None:
        issues += check_cohort_sizes(matrix, quality)
    if "churn_rate" in data:
        issues += check_churn_split(data["churn_rate"])
    return issues


def main() -> None:
    data = _read_parquet_map()
    if not data:
        raise FileNotFoundError(f"No parquet outputs found in {PATHS.gold}")

    for name, df in data.items():
        logger.info("[QC] %s rows=%s cols=%s", name, len(df), len(df.columns))
        _check_nan_inf(
            name,
            df,
            [
                "retention_rate",
                "repeat_rate_percent",
                "churn_rate",
                "one_time_share_pct",
            ],
        )

    issues = run_checks(data)
    for issue in issues:
        logger.error("[QC] %s", issue)
    if issues:
        sys.exit(1)
    logger.info("[QC] Gold invariants hold across %s tables", len(data))


if __name__ == "__main__":
    main()
