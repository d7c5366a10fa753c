# src/bronze/load_raw.py
# Loads the raw Online Retail export into Bronze with safe types and a cancellation flag.
from __future__ import annotations

import argparse
from pathlib import Path

import pandas as pd

from utils.data import BRONZE_FILE, RAW_TEXT_COLUMNS
from utils.io import get_paths, logger, read_csv, write_csv
from utils.schemas import RAW_COLUMNS, bronze_transactions_schema
from utils.settings import load_settings

PATHS = get_paths()
DEF_OUT = PATHS.bronze / BRONZE_FILE


def _clean_text(s: pd.Series) -> pd.Series:
    cleaned = s.astype("string").str.strip()
    cleaned = cleaned.mask(cleaned.eq("").fillna(False))
    return cleaned.astype(object).where(cleaned.notna(), None)


def normalize_customer_id(s: pd.Series) -> pd.Series:
    """Customer ids as text; ``17850.0`` from spreadsheet exports becomes ``17850``."""
    ids = _clean_text(s)
    ids = ids.where(ids.isna(), ids.astype(str).str.replace(r"\.0+$", "", regex=True))
    return ids.where(ids.notna(), None)


def normalize_raw(df: pd.DataFrame, cancellation_prefix: str = "C") -> pd.DataFrame:
    missing = [c for c in RAW_COLUMNS if c not in df.columns]
    if missing:
        raise KeyError(f"Raw transactions missing columns: {missing}")

    out = df[RAW_COLUMNS].copy()

    # Invoice and product keys without padding or mixed casing
    out["InvoiceNo"] = _clean_text(out["InvoiceNo"].astype("string").str.upper())
    out["StockCode"] = _clean_text(out["StockCode"].astype("string").str.upper())
    out["Description"] = _clean_text(out["Description"])
    out["Country"] = _clean_text(out["Country"])
    out["CustomerID"] = normalize_customer_id(out["CustomerID"])

    out["InvoiceDate"] = pd.to_datetime(out["InvoiceDate"], errors="coerce")
    out["Quantity"] = pd.to_numeric(out["Quantity"], errors="coerce")
    out["UnitPrice"] = pd.to_numeric(out["UnitPrice"], errors="coerce")

    out["IsCancellation"] = out["InvoiceNo"].str.startswith(cancellation_prefix.upper(), na=False)
    return bronze_transactions_schema.validate(out, lazy=True)


def main(inp: Path | None = None, outp: Path | None = None) -> pd.DataFrame:
    settings = load_settings()
    inp = Path(inp) if inp else PATHS.raw / settings.raw_file
    outp = Path(outp) if outp else DEF_OUT

    raw = read_csv(inp, dtype=RAW_TEXT_COLUMNS, encoding=settings.raw_encoding)
    bronze = normalize_raw(raw, cancellation_prefix=settings.cancellation_prefix)

    write_csv(bronze, outp)
    logger.info(
        "bronze rows=%s | cancellations=%s | unparsed dates=%s",
        len(bronze),
        int(bronze["IsCancellation"].sum()),
        int(bronze["InvoiceDate"].isna().sum()),
    )
    return bronze


if __name__ == "__main__":
    ap = argparse.ArgumentParser(
        description="Load the raw transaction export into Bronze.")
    ap.add_argument("--in", dest="inp", default=None,
                    help="Raw CSV (default data/raw/<raw_file>).")
    ap.add_argument("--out", dest="outp", default=str(DEF_OUT),
                    help="Bronze CSV output.")
    args = ap.parse_args()
    main(Path(args.inp) if args.inp else None, Path(args.outp))
