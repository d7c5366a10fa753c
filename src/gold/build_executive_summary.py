"""Generate executive summary snapshot from the GOLD retention tables."""
from __future__ import annotations

import numpy as np
import pandas as pd

from utils.data import load_transactions
from utils.io import get_paths, logger, read_parquet, write_parquet
from utils.schemas import executive_summary_schema

PATHS = get_paths()
GOLD_DIR = PATHS.gold
OUTPUT_PATH = GOLD_DIR / "executive_summary.parquet"

SUMMARY_INPUTS = ["repeat_purchase_rate", "time_to_second_purchase", "churn_rate"]


def _as_float(value) -> float:
    return np.nan if pd.isna(value) else float(value)


def _read_gold_inputs() -> dict[str, pd.DataFrame]:
    return {name: read_parquet(GOLD_DIR / f"{name}.parquet") for name in SUMMARY_INPUTS}


def build_executive_summary(
    transactions: pd.DataFrame,
    gold: dict[str, pd.DataFrame] | None = None,
) -> pd.DataFrame:
    if transactions.empty:
        raise ValueError("Transactions table is empty; run build_transactions_features first.")
    gold = gold if gold is not None else _read_gold_inputs()
    missing = [name for name in SUMMARY_INPUTS if name not in gold]
    if missing:
        raise KeyError(f"Missing gold tables for summary: {missing}")

    repeat = gold["repeat_purchase_rate"].iloc[0]
    timing = gold["time_to_second_purchase"].iloc[0]
    churn = gold["churn_rate"].iloc[0]

    summary = pd.DataFrame(
        {
            "first_order_date": [transactions["order_date"].min()],
            "last_order_date": [transactions["order_date"].max()],
            "transaction_rows": [len(transactions)],
            "invoices": [transactions["invoice_no"].nunique()],
            "customers": [transactions["customer_id"].nunique()],
            "cohorts": [transactions["cohort_month"].nunique()],
            "revenue": [round(float(transactions["total_sum"].sum()), 2)],
            "repeat_rate_percent": [_as_float(repeat["repeat_rate_percent"])],
            "avg_days_to_2nd_order": [_as_float(timing["avg_days_to_2nd_order"])],
            "median_days_to_2nd_order": [_as_float(timing["median_days"])],
            "churn_rate": [_as_float(churn["churn_rate"])],
            "churn_threshold_days": [int(churn["churn_threshold_days"])],
        }
    )
    return executive_summary_schema.validate(summary, lazy=True)


def main() -> pd.DataFrame:
    summary = build_executive_summary(load_transactions())
    write_parquet(summary, OUTPUT_PATH)
    logger.info("executive_summary rows=%s", len(summary))
    return summary


if __name__ == "__main__":
    main()
