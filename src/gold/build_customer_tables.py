"""Build GOLD customer purchase-history, repeat, timing and churn tables."""
from __future__ import annotations

import numpy as np
import pandas as pd

from features.cohorts import days_to_second_order, rank_customer_orders
from features.metrics import days_between, pct
from utils.data import load_transactions
from utils.io import get_paths, logger, write_parquet
from utils.schemas import (
    churn_rate_schema,
    customer_order_sequence_schema,
    customer_profile_schema,
    repeat_purchase_rate_schema,
    time_to_second_purchase_schema,
)
from utils.settings import load_settings

PATHS = get_paths()
GOLD_DIR = PATHS.gold

DEFAULT_CHURN_DAYS = 90


# ---------- GOLD: purchase history ----------


def build_customer_order_sequence(df: pd.DataFrame) -> pd.DataFrame:
    ranked = rank_customer_orders(df)
    cols = ["customer_id", "invoice_no", "order_date", "invoice_date", "order_num"]
    return customer_order_sequence_schema.validate(ranked[cols], lazy=True)


# ---------- GOLD: summary rows ----------


def build_repeat_purchase_rate(df: pd.DataFrame) -> pd.DataFrame:
    """Share of customers with at least two distinct invoices."""
    orders = df.groupby("customer_id")["invoice_no"].nunique()
    total = int(orders.size)
    repeat = int((orders >= 2).sum())
    out = pd.DataFrame(
        {
            "total_customers": [total],
            "repeat_customers": [repeat],
            "one_time_customers": [total - repeat],
            "repeat_rate_percent": [pct(repeat, total, 2)],
        }
    )
    return repeat_purchase_rate_schema.validate(out, lazy=True)


def build_time_to_second_purchase(df: pd.DataFrame) -> pd.DataFrame:
    """Mean (1 decimal) and median days between first and second order."""
    gaps = days_to_second_order(rank_customer_orders(df))
    out = pd.DataFrame(
        {
            "customers_with_second_order": [int(gaps.size)],
            "avg_days_to_2nd_order": [round(gaps.mean(), 1) if not gaps.empty else np.nan],
            "median_days": [float(gaps.median()) if not gaps.empty else np.nan],
        }
    )
    return time_to_second_purchase_schema.validate(out, lazy=True)


def churn_flags(df: pd.DataFrame, threshold_days: int = DEFAULT_CHURN_DAYS) -> pd.DataFrame:
    """Per-customer recency against the dataset's latest order date.

    Churn compares whole days, independent of the month-based cohort index.
    """
    last = df.groupby("customer_id")["order_date"].max().rename("last_order_date")
    flags = last.reset_index()
    if flags.empty:
        flags["recency_days"] = pd.Series(dtype="int64")
        flags["is_churned"] = pd.Series(dtype="bool")
        return flags
    reference = df["order_date"].max()
    flags["recency_days"] = days_between(reference, flags["last_order_date"]).astype("int64")
    flags["is_churned"] = flags["recency_days"] > threshold_days
    return flags


def build_churn_rate(df: pd.DataFrame, threshold_days: int = DEFAULT_CHURN_DAYS) -> pd.DataFrame:
    flags = churn_flags(df, threshold_days)
    total = len(flags)
    churned = int(flags["is_churned"].sum())
    out = pd.DataFrame(
        {
            "reference_date": [df["order_date"].max() if total else pd.NaT],
            "churn_threshold_days": [threshold_days],
            "total_customers": [total],
            "churned_customers": [churned],
            "active_customers": [total - churned],
            "churn_rate": [pct(churned, total, 2)],
            "active_rate": [pct(total - churned, total, 2)],
        }
    )
    return churn_rate_schema.validate(out, lazy=True)


# ---------- GOLD: customer profile ----------


def churn_risk_from_recency(recency_days: pd.Series) -> pd.Series:
    """Bucket recency (days) into churn-risk levels for the dashboard."""
    bins = [-np.inf, 30, 90, 180, np.inf]
    labels = ["Low", "Medium", "High", "Very High"]
    return pd.cut(recency_days, bins=bins, labels=labels)


def build_customer_profile(df: pd.DataFrame, threshold_days: int = DEFAULT_CHURN_DAYS) -> pd.DataFrame:
    g = df.groupby("customer_id")
    profile = g.agg(
        cohort_month=("cohort_month", "first"),
        orders=("invoice_no", "nunique"),
        first_order_date=("order_date", "min"),
        total_spent=("total_sum", "sum"),
    ).reset_index()

    profile = profile.merge(churn_flags(df, threshold_days), on="customer_id", how="left")
    gaps = days_to_second_order(rank_customer_orders(df))
    profile["days_to_second_order"] = profile["customer_id"].map(gaps)
    profile["total_spent"] = profile["total_spent"].round(2)
    profile["churn_risk"] = churn_risk_from_recency(profile["recency_days"])

    cols = [
        "customer_id",
        "cohort_month",
        "orders",
        "first_order_date",
        "last_order_date",
        "recency_days",
        "days_to_second_order",
        "total_spent",
        "is_churned",
        "churn_risk",
    ]
    profile = profile[cols].sort_values("customer_id").reset_index(drop=True)
    return customer_profile_schema.validate(profile, lazy=True)


def build_customer_tables(df: pd.DataFrame, threshold_days: int = DEFAULT_CHURN_DAYS) -> dict[str, pd.DataFrame]:
    return {
        "customer_order_sequence": build_customer_order_sequence(df),
        "customer_profile": build_customer_profile(df, threshold_days),
        "repeat_purchase_rate": build_repeat_purchase_rate(df),
        "time_to_second_purchase": build_time_to_second_purchase(df),
        "churn_rate": build_churn_rate(df, threshold_days),
    }


def main() -> dict[str, pd.DataFrame]:
    settings = load_settings()
    outputs = build_customer_tables(load_transactions(), settings.churn_threshold_days)
    for name, table in outputs.items():
        write_parquet(table, GOLD_DIR / f"{name}.parquet")

    repeat = outputs["repeat_purchase_rate"].iloc[0]
    churn = outputs["churn_rate"].iloc[0]
    logger.info(
        "customers=%s | repeat_rate=%s%% | churn_rate=%s%% (>%s days)",
        repeat["total_customers"],
        repeat["repeat_rate_percent"],
        churn["churn_rate"],
        settings.churn_threshold_days,
    )
    return outputs


if __name__ == "__main__":
    main()
