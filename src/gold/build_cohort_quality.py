"""Build GOLD cohort quality table (one-time buyers per acquisition cohort)."""
from __future__ import annotations

import pandas as pd

from features.metrics import pct
from utils.data import load_transactions
from utils.io import get_paths, logger, write_parquet
from utils.schemas import cohort_quality_schema

PATHS = get_paths()
OUTPUT_PATH = PATHS.gold / "cohort_quality.parquet"


def build_cohort_quality(df: pd.DataFrame) -> pd.DataFrame:
    """Per cohort: size, one-time vs repeat buyers and one-time share (lower is better)."""
    stats = (
        df.groupby(["customer_id", "cohort_month"])["invoice_no"]
        .nunique()
        .rename("orders_count")
        .reset_index()
    )
    stats["is_one_time"] = stats["orders_count"] == 1

    quality = stats.groupby("cohort_month").agg(
        cohort_size=("customer_id", "nunique"),
        one_time_buyers=("is_one_time", "sum"),
    ).reset_index()
    quality["repeat_buyers"] = quality["cohort_size"] - quality["one_time_buyers"]
    quality["one_time_share_pct"] = pct(quality["one_time_buyers"], quality["cohort_size"], 1)

    quality = quality.sort_values("cohort_month").reset_index(drop=True)
    cols = ["cohort_month", "cohort_size", "one_time_buyers", "repeat_buyers", "one_time_share_pct"]
    return cohort_quality_schema.validate(quality[cols], lazy=True)


def main() -> pd.DataFrame:
    quality = build_cohort_quality(load_transactions())
    write_parquet(quality, OUTPUT_PATH)
    logger.info("cohort_quality rows=%s", len(quality))
    return quality


if __name__ == "__main__":
    main()
