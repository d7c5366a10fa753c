"""Build GOLD monthly cohort retention tables."""
from __future__ import annotations

import pandas as pd

from features.metrics import pct
from utils.data import load_transactions
from utils.io import get_paths, logger, write_parquet
from utils.schemas import retention_matrix_schema, retention_matrix_wide_schema
from utils.settings import load_settings

PATHS = get_paths()
MATRIX_PATH = PATHS.gold / "retention_matrix.parquet"
WIDE_PATH = PATHS.gold / "retention_matrix_wide.parquet"


def build_retention_matrix(df: pd.DataFrame) -> pd.DataFrame:
    """Long retention matrix: one row per (cohort_month, cohort_index).

    Cohort size counts the distinct customers active at index 0; every
    retention rate is active customers over that size, as a percentage.
    """
    base = (
        df.loc[df["customer_id"].notna(), ["customer_id", "cohort_month", "cohort_index"]]
        .drop_duplicates()
    )

    sizes = (
        base.loc[base["cohort_index"] == 0]
        .groupby("cohort_month")["customer_id"]
        .nunique()
        .rename("original_size")
        .reset_index()
    )
    counts = (
        base.groupby(["cohort_month", "cohort_index"])["customer_id"]
        .nunique()
        .rename("active_customers")
        .reset_index()
    )

    matrix = counts.merge(sizes, on="cohort_month", how="inner")
    matrix["retention_rate"] = pct(matrix["active_customers"], matrix["original_size"], 2)
    matrix = matrix.sort_values(["cohort_month", "cohort_index"]).reset_index(drop=True)

    cols = ["cohort_month", "original_size", "cohort_index", "active_customers", "retention_rate"]
    return retention_matrix_schema.validate(matrix[cols], lazy=True)


def build_retention_wide(matrix: pd.DataFrame, max_index: int | None = None) -> pd.DataFrame:
    """Pivot the long matrix into one row per cohort with ``month_<i>`` rates."""
    m = matrix
    if max_index is not None:
        m = m.loc[m["cohort_index"] <= max_index]

    wide = m.pivot(index="cohort_month", columns="cohort_index", values="retention_rate")
    wide = wide.reindex(columns=sorted(wide.columns))
    wide.columns = [f"month_{int(i)}" for i in wide.columns]

    sizes = m.groupby("cohort_month")["original_size"].first()
    wide.insert(0, "original_size", sizes.reindex(wide.index))
    return retention_matrix_wide_schema.validate(wide.reset_index(), lazy=True)


def main() -> dict[str, pd.DataFrame]:
    settings = load_settings()
    matrix = build_retention_matrix(load_transactions())
    wide = build_retention_wide(matrix, max_index=settings.max_cohort_index)

    write_parquet(matrix, MATRIX_PATH)
    write_parquet(wide, WIDE_PATH)
    logger.info(
        "retention_matrix rows=%s | retention_matrix_wide cohorts=%s",
        len(matrix),
        len(wide),
    )
    return {"retention_matrix": matrix, "retention_matrix_wide": wide}


if __name__ == "__main__":
    main()
