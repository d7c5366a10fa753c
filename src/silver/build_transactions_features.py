# src/silver/build_transactions_features.py
# Bronze -> Silver: filter rules plus cohort features per transaction line.
from __future__ import annotations

import pandas as pd

from features.cohorts import FEATURE_COLUMNS, derive_cohort_features
from utils.data import FEATURES_FILE, load_bronze_transactions
from utils.io import get_paths, logger, write_csv
from utils.schemas import RAW_COLUMNS, transactions_features_schema
from utils.settings import AnalysisSettings, load_settings

PATHS = get_paths()
OUT = PATHS.silver / FEATURES_FILE

RENAME = {
    "InvoiceNo": "invoice_no",
    "StockCode": "stock_code",
    "Description": "description",
    "Quantity": "quantity",
    "InvoiceDate": "invoice_date",
    "UnitPrice": "unit_price",
    "CustomerID": "customer_id",
    "Country": "country",
}


def clean_transactions(
    df: pd.DataFrame,
    *,
    cancellation_prefix: str = "C",
    drop_non_positive: bool = True,
    drop_duplicates: bool = True,
) -> pd.DataFrame:
    """Apply the Silver filter rules and return snake_case transaction columns."""
    is_cancel = df["InvoiceNo"].astype(str).str.upper().str.startswith(cancellation_prefix.upper())
    no_customer = df["CustomerID"].isna()
    no_date = df["InvoiceDate"].isna()
    # Quantity and price must be present to value a line
    no_amount = df["Quantity"].isna() | df["UnitPrice"].isna()
    keep = ~is_cancel & ~no_customer & ~no_date & ~no_amount

    non_positive = (df["Quantity"] <= 0) | (df["UnitPrice"] <= 0)
    if drop_non_positive:
        keep &= ~non_positive

    trans = df.loc[keep, RAW_COLUMNS].copy()
    duplicates = 0
    if drop_duplicates:
        before = len(trans)
        trans = trans.drop_duplicates()
        duplicates = before - len(trans)

    logger.info(
        "Silver filters: cancellations=%s no_customer=%s no_date=%s no_amount=%s "
        "non_positive=%s duplicates=%s kept=%s/%s",
        int(is_cancel.sum()),
        int(no_customer.sum()),
        int(no_date.sum()),
        int(no_amount.sum()),
        int(non_positive.sum()) if drop_non_positive else 0,
        duplicates,
        len(trans),
        len(df),
    )
    return trans.rename(columns=RENAME).reset_index(drop=True)


def build_transactions_features(
    bronze: pd.DataFrame, settings: AnalysisSettings | None = None
) -> pd.DataFrame:
    settings = settings or AnalysisSettings()
    trans = clean_transactions(
        bronze,
        cancellation_prefix=settings.cancellation_prefix,
        drop_non_positive=settings.drop_non_positive_lines,
        drop_duplicates=settings.drop_duplicate_lines,
    )
    features = derive_cohort_features(trans)
    features = features.sort_values(["customer_id", "invoice_date", "invoice_no"]).reset_index(drop=True)

    cols = list(RENAME.values()) + FEATURE_COLUMNS
    return transactions_features_schema.validate(features[cols], lazy=True)


def main() -> pd.DataFrame:
    features = build_transactions_features(load_bronze_transactions(), load_settings())
    write_csv(features, OUT)
    logger.info(
        "online_retail_features rows=%s customers=%s cohorts=%s",
        len(features),
        features["customer_id"].nunique(),
        features["cohort_month"].nunique(),
    )
    return features


if __name__ == "__main__":
    main()
