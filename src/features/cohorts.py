"""Cohort feature engineering on the cleaned transactions table."""
from __future__ import annotations

import pandas as pd

from features.metrics import days_between, month_diff, month_start

FEATURE_COLUMNS = [
    "invoice_month",
    "first_purchase_date",
    "order_date",
    "order_month",
    "cohort_date",
    "cohort_month",
    "cohort_index",
    "total_sum",
]


def derive_cohort_features(
    df: pd.DataFrame,
    *,
    customer_col: str = "customer_id",
    date_col: str = "invoice_date",
) -> pd.DataFrame:
    """Attach cohort month and cohort index to every transaction line.

    The cohort is the calendar month of the customer's earliest invoice; the
    index counts calendar months from that cohort month (0 inside it). Input
    must already be free of cancellations and anonymous rows.
    """
    if df[customer_col].isna().any():
        raise ValueError(
            f"{int(df[customer_col].isna().sum())} rows without '{customer_col}'; "
            "filter them before deriving cohorts"
        )

    out = df.copy()
    out["invoice_month"] = month_start(out[date_col])
    out["order_date"] = out[date_col].dt.normalize()
    out["order_month"] = out[date_col].dt.strftime("%Y-%m")

    out["first_purchase_date"] = out.groupby(customer_col)[date_col].transform("min")
    out["cohort_date"] = month_start(out["first_purchase_date"])
    out["cohort_month"] = out["cohort_date"].dt.strftime("%Y-%m")
    out["cohort_index"] = month_diff(out["invoice_month"], out["cohort_date"])

    out["total_sum"] = (out["quantity"] * out["unit_price"]).round(2)
    return out


def rank_customer_orders(df: pd.DataFrame) -> pd.DataFrame:
    """One row per (customer, invoice) numbered 1, 2, ... in purchase order.

    Ties on ``order_date`` fall back to the invoice timestamp, then the
    invoice number, so the numbering is deterministic.
    """
    orders = df.groupby(["customer_id", "invoice_no"], as_index=False).agg(
        order_date=("order_date", "min"),
        invoice_date=("invoice_date", "min"),
    )
    orders = orders.sort_values(
        ["customer_id", "order_date", "invoice_date", "invoice_no"]
    ).reset_index(drop=True)
    orders["order_num"] = orders.groupby("customer_id").cumcount() + 1
    return orders


def days_to_second_order(ranked: pd.DataFrame) -> pd.Series:
    """Days between first and second order for customers with at least two."""
    first = ranked.loc[ranked["order_num"] == 1].set_index("customer_id")["order_date"]
    second = ranked.loc[ranked["order_num"] == 2].set_index("customer_id")["order_date"]
    if second.empty:
        return pd.Series(dtype="float64", name="days_to_second_order")
    gaps = days_between(second, first.reindex(second.index))
    return gaps.astype("float64").rename("days_to_second_order")


__all__ = [
    "FEATURE_COLUMNS",
    "derive_cohort_features",
    "rank_customer_orders",
    "days_to_second_order",
]
