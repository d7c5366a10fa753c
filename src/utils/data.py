"""Data loading helpers."""
from __future__ import annotations

import pandas as pd

from utils.io import get_paths, read_csv
from utils.schemas import bronze_transactions_schema, transactions_features_schema

BRONZE_FILE = "online_retail.csv"
FEATURES_FILE = "online_retail_features.csv"
RAW_TEXT_COLUMNS = {"InvoiceNo": str, "StockCode": str, "CustomerID": str}
DATE_COLUMNS = [
    "invoice_date",
    "invoice_month",
    "first_purchase_date",
    "order_date",
    "cohort_date",
]
TEXT_COLUMNS = {
    "invoice_no": str,
    "stock_code": str,
    "customer_id": str,
    "order_month": str,
    "cohort_month": str,
}


def load_bronze_transactions() -> pd.DataFrame:
    """Load and validate the typed bronze copy of the raw transaction log."""
    paths = get_paths()
    path = paths.bronze / BRONZE_FILE
    df = read_csv(path, parse_dates=["InvoiceDate"], dtype=RAW_TEXT_COLUMNS)
    return bronze_transactions_schema.validate(df, lazy=True)


def load_transactions() -> pd.DataFrame:
    """Load and validate the silver transactions table with cohort features."""
    paths = get_paths()
    path = paths.silver / FEATURES_FILE
    df = read_csv(path, parse_dates=DATE_COLUMNS, dtype=TEXT_COLUMNS)
    df = transactions_features_schema.validate(df, lazy=True)
    return df


__all__ = ["BRONZE_FILE", "FEATURES_FILE", "load_bronze_transactions", "load_transactions"]
