# src/bronze/qc_bronze.py
# Sanity checks on the loaded Bronze table: row count, date range, customers, sample.
from __future__ import annotations

import pandas as pd

from utils.data import load_bronze_transactions
from utils.io import get_paths, logger, write_csv

PATHS = get_paths()
OUTDIR = PATHS.reports / "bronze_qc"
OUTCSV = OUTDIR / "bronze_profile.csv"


def profile_bronze(df: pd.DataFrame) -> pd.DataFrame:
    qc = {
        "rows_total": [len(df)],
        "unique_customers": [df["CustomerID"].nunique(dropna=True)],
        "unique_invoices": [df["InvoiceNo"].nunique()],
        "nulls_CustomerID": [int(df["CustomerID"].isna().sum())],
        "nulls_InvoiceDate": [int(df["InvoiceDate"].isna().sum())],
        "cancellation_lines": [int(df["IsCancellation"].sum())],
        "qty_le_0": [int((df["Quantity"] <= 0).sum())],
        "prices_le_0": [int((df["UnitPrice"] <= 0).sum())],
        "duplicate_lines": [int(df.duplicated().sum())],
        "min_date": [df["InvoiceDate"].min()],
        "max_date": [df["InvoiceDate"].max()],
    }
    return pd.DataFrame(qc)


def main() -> pd.DataFrame:
    df = load_bronze_transactions()
    qc = profile_bronze(df)
    write_csv(qc, OUTCSV)

    row = qc.iloc[0]
    logger.info(
        "Bronze QC rows=%s customers=%s dates=(%s → %s)",
        row["rows_total"],
        row["unique_customers"],
        row["min_date"],
        row["max_date"],
    )
    if row["nulls_CustomerID"]:
        logger.warning("%s lines without CustomerID will be excluded", row["nulls_CustomerID"])
    logger.debug("Sample rows:\n%s", df.head(5).to_string(index=False))
    return qc


if __name__ == "__main__":
    main()
