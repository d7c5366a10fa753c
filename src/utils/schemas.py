"""DataFrame contracts for retention analytics artifacts."""
from __future__ import annotations

import pandera as pa
from pandera import Check, Column, DataFrameSchema

_YEAR_MONTH = Check.str_matches(r"^\d{4}-\d{2}$")
_PERCENT = Check.in_range(0, 100)

# ---------------------------------------------------------------------------
# BRONZE
# ---------------------------------------------------------------------------

RAW_COLUMNS = [
    "InvoiceNo",
    "StockCode",
    "Description",
    "Quantity",
    "InvoiceDate",
    "UnitPrice",
    "CustomerID",
    "Country",
]

bronze_transactions_schema = DataFrameSchema(
    {
        "InvoiceNo": Column(pa.String, required=True),
        "StockCode": Column(pa.String, required=True),
        "Description": Column(pa.String, required=False, nullable=True),
        "Quantity": Column(pa.Float, required=True, nullable=True),
        "InvoiceDate": Column(pa.DateTime, required=True, nullable=True),
        "UnitPrice": Column(pa.Float, required=True, nullable=True),
        "CustomerID": Column(pa.String, required=True, nullable=True),
        "Country": Column(pa.String, required=False, nullable=True),
        "IsCancellation": Column(pa.Bool, required=True),
    },
    coerce=True,
    strict=False,
)

# ---------------------------------------------------------------------------
# SILVER
# ---------------------------------------------------------------------------

transactions_features_schema = DataFrameSchema(
    {
        "invoice_no": Column(pa.String, required=True),
        "stock_code": Column(pa.String, required=True),
        "description": Column(pa.String, required=False, nullable=True),
        "quantity": Column(pa.Float, required=True),
        "invoice_date": Column(pa.DateTime, required=True),
        "unit_price": Column(pa.Float, required=True),
        "customer_id": Column(pa.String, required=True, nullable=False),
        "country": Column(pa.String, required=False, nullable=True),
        "invoice_month": Column(pa.DateTime, required=True),
        "first_purchase_date": Column(pa.DateTime, required=True),
        "order_date": Column(pa.DateTime, required=True),
        "order_month": Column(pa.String, _YEAR_MONTH, required=True),
        "cohort_date": Column(pa.DateTime, required=True),
        "cohort_month": Column(pa.String, _YEAR_MONTH, required=True),
        "cohort_index": Column(pa.Int64, Check.ge(0), required=True),
        "total_sum": Column(pa.Float, required=True),
    },
    coerce=True,
    strict=False,
)

# ---------------------------------------------------------------------------
# GOLD COHORT TABLES
# ---------------------------------------------------------------------------

retention_matrix_schema = DataFrameSchema(
    {
        "cohort_month": Column(pa.String, _YEAR_MONTH, required=True),
        "original_size": Column(pa.Int64, Check.ge(0), required=True),
        "cohort_index": Column(pa.Int64, Check.ge(0), required=True),
        "active_customers": Column(pa.Int64, Check.ge(0), required=True),
        "retention_rate": Column(pa.Float, _PERCENT, required=True, nullable=True),
    },
    coerce=True,
    strict=False,
)

retention_matrix_wide_schema = DataFrameSchema(
    {
        "cohort_month": Column(pa.String, _YEAR_MONTH, required=True, unique=True),
        "original_size": Column(pa.Int64, Check.ge(0), required=True),
        r"^month_\d+$": Column(pa.Float, _PERCENT, nullable=True, regex=True),
    },
    coerce=True,
    strict=True,
)

cohort_quality_schema = DataFrameSchema(
    {
        "cohort_month": Column(pa.String, _YEAR_MONTH, required=True),
        "cohort_size": Column(pa.Int64, Check.ge(0), required=True),
        "one_time_buyers": Column(pa.Int64, Check.ge(0), required=True),
        "repeat_buyers": Column(pa.Int64, Check.ge(0), required=True),
        "one_time_share_pct": Column(pa.Float, _PERCENT, required=True, nullable=True),
    },
    coerce=True,
    strict=False,
)

# ---------------------------------------------------------------------------
# GOLD CUSTOMER TABLES
# ---------------------------------------------------------------------------

customer_order_sequence_schema = DataFrameSchema(
    {
        "customer_id": Column(pa.String, required=True),
        "invoice_no": Column(pa.String, required=True),
        "order_date": Column(pa.DateTime, required=True),
        "invoice_date": Column(pa.DateTime, required=True),
        "order_num": Column(pa.Int64, Check.ge(1), required=True),
    },
    coerce=True,
    strict=False,
)

customer_profile_schema = DataFrameSchema(
    {
        "customer_id": Column(pa.String, required=True, unique=True),
        "cohort_month": Column(pa.String, _YEAR_MONTH, required=True),
        "orders": Column(pa.Int64, Check.ge(1), required=True),
        "first_order_date": Column(pa.DateTime, required=True),
        "last_order_date": Column(pa.DateTime, required=True),
        "recency_days": Column(pa.Int64, Check.ge(0), required=True),
        "days_to_second_order": Column(pa.Float, Check.ge(0), required=True, nullable=True),
        "total_spent": Column(pa.Float, required=True),
        "is_churned": Column(pa.Bool, required=True),
    },
    coerce=True,
    strict=False,
)

# ---------------------------------------------------------------------------
# GOLD SUMMARY ROWS
# ---------------------------------------------------------------------------

repeat_purchase_rate_schema = DataFrameSchema(
    {
        "total_customers": Column(pa.Int64, Check.ge(0), required=True),
        "repeat_customers": Column(pa.Int64, Check.ge(0), required=True),
        "one_time_customers": Column(pa.Int64, Check.ge(0), required=True),
        "repeat_rate_percent": Column(pa.Float, _PERCENT, required=True, nullable=True),
    },
    coerce=True,
    strict=False,
)

time_to_second_purchase_schema = DataFrameSchema(
    {
        "customers_with_second_order": Column(pa.Int64, Check.ge(0), required=True),
        "avg_days_to_2nd_order": Column(pa.Float, Check.ge(0), required=True, nullable=True),
        "median_days": Column(pa.Float, Check.ge(0), required=True, nullable=True),
    },
    coerce=True,
    strict=False,
)

churn_rate_schema = DataFrameSchema(
    {
        "reference_date": Column(pa.DateTime, required=True, nullable=True),
        "churn_threshold_days": Column(pa.Int64, Check.ge(0), required=True),
        "total_customers": Column(pa.Int64, Check.ge(0), required=True),
        "churned_customers": Column(pa.Int64, Check.ge(0), required=True),
        "active_customers": Column(pa.Int64, Check.ge(0), required=True),
        "churn_rate": Column(pa.Float, _PERCENT, required=True, nullable=True),
        "active_rate": Column(pa.Float, _PERCENT, required=True, nullable=True),
    },
    coerce=True,
    strict=False,
)


executive_summary_schema = DataFrameSchema(
    {
        "first_order_date": Column(pa.DateTime, required=True),
        "last_order_date": Column(pa.DateTime, required=True),
        "transaction_rows": Column(pa.Int64, Check.ge(0), required=True),
        "invoices": Column(pa.Int64, Check.ge(0), required=True),
        "customers": Column(pa.Int64, Check.ge(0), required=True),
        "cohorts": Column(pa.Int64, Check.ge(0), required=True),
        "revenue": Column(pa.Float, required=True),
        "repeat_rate_percent": Column(pa.Float, _PERCENT, required=True, nullable=True),
        "avg_days_to_2nd_order": Column(pa.Float, Check.ge(0), required=True, nullable=True),
        "median_days_to_2nd_order": Column(pa.Float, Check.ge(0), required=True, nullable=True),
        "churn_rate": Column(pa.Float, _PERCENT, required=True, nullable=True),
        "churn_threshold_days": Column(pa.Int64, Check.ge(0), required=True),
    },
    coerce=True,
    strict=False,
)


__all__ = [
    "RAW_COLUMNS",
    "retention_matrix_wide_schema",
    "executive_summary_schema",
    "bronze_transactions_schema",
    "transactions_features_schema",
    "retention_matrix_schema",
    "cohort_quality_schema",
    "customer_order_sequence_schema",
    "customer_profile_schema",
    "repeat_purchase_rate_schema",
    "time_to_second_purchase_schema",
    "churn_rate_schema",
]
