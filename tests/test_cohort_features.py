from __future__ import annotations

import unittest
from datetime import datetime
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

import numpy as np
import pandas as pd

from features.cohorts import days_to_second_order, derive_cohort_features, rank_customer_orders
from features.metrics import month_diff, pct, safe_div


def _line(customer, invoice, when, quantity=1, price=10.0):
    return {
        "invoice_no": invoice,
        "stock_code": "85123A",
        "description": "WHITE HANGING HEART",
        "quantity": quantity,
        "invoice_date": when,
        "unit_price": price,
        "customer_id": customer,
        "country": "United Kingdom",
    }


def _sample_transactions() -> pd.DataFrame:
    rows = [
        _line("C1", "536365", datetime(2010, 12, 1, 8, 26), quantity=6, price=2.55),
        _line("C1", "536365", datetime(2010, 12, 1, 8, 26), quantity=8, price=3.39),
        _line("C1", "539993", datetime(2011, 1, 4, 10, 0)),
        _line("C1", "548011", datetime(2011, 3, 29, 13, 5)),
        _line("C2", "540001", datetime(2011, 1, 31, 23, 50)),
        _line("C2", "541000", datetime(2011, 2, 1, 0, 10)),
        _line("C3", "545000", datetime(2011, 2, 28, 9, 0)),
    ]
    return pd.DataFrame(rows)


class MetricHelpersTest(unittest.TestCase):
    def test_safe_div_scalar_zero_is_nan(self):
        self.assertTrue(np.isnan(safe_div(0, 0)))
        self.assertTrue(np.isnan(safe_div(5, 0)))

    def test_safe_div_series_keeps_valid_ratios(self):
        result = safe_div(pd.Series([1.0, 2.0]), pd.Series([4.0, 0.0]))
        self.assertAlmostEqual(result.iloc[0], 0.25)
        self.assertTrue(np.isnan(result.iloc[1]))

    def test_pct_rounds_to_two_decimals(self):
        self.assertEqual(pct(2, 3), 66.67)

    def test_month_diff_ignores_day_of_month(self):
        later = pd.Series(pd.to_datetime(["2011-02-01", "2011-01-15", "2012-03-31"]))
        earlier = pd.Series(pd.to_datetime(["2011-01-31", "2010-12-31", "2011-03-01"]))
        self.assertEqual(month_diff(later, earlier).tolist(), [1, 1, 12])


class CohortFeaturesTest(unittest.TestCase):
    def setUp(self) -> None:
        self.features = derive_cohort_features(_sample_transactions())

    def test_first_purchase_month_has_index_zero(self):
        first_index = self.features.groupby("customer_id")["cohort_index"].min()
        self.assertTrue((first_index == 0).all())

    def test_cohort_index_never_negative(self):
        self.assertTrue((self.features["cohort_index"] >= 0).all())

    def test_cohort_month_spans_year_boundary(self):
        c1 = self.features[self.features["customer_id"] == "C1"]
        self.assertEqual(set(c1["cohort_month"]), {"2010-12"})
        self.assertEqual(sorted(c1["cohort_index"].unique().tolist()), [0, 1, 3])

    def test_index_counts_calendar_months_not_days(self):
        # 31 Jan 23:50 -> 1 Feb 00:10 is twenty minutes but one calendar month
        c2 = self.features[self.features["customer_id"] == "C2"].sort_values("invoice_date")
        self.assertEqual(c2["cohort_index"].tolist(), [0, 1])
        self.assertEqual(c2["order_month"].tolist(), ["2011-01", "2011-02"])

    def test_derived_dates(self):
        row = self.features[self.features["invoice_no"] == "539993"].iloc[0]
        self.assertEqual(row["invoice_month"], pd.Timestamp("2011-01-01"))
        self.assertEqual(row["order_date"], pd.Timestamp("2011-01-04"))
        self.assertEqual(row["cohort_date"], pd.Timestamp("2010-12-01"))
        self.assertEqual(row["first_purchase_date"], pd.Timestamp("2010-12-01 08:26"))

    def test_total_sum_is_line_value(self):
        first = self.features[self.features["invoice_no"] == "536365"]
        self.assertEqual(sorted(first["total_sum"].tolist()), [15.3, 27.12])

    def test_null_customer_rejected(self):
        tx = _sample_transactions()
        tx.loc[0, "customer_id"] = None
        with self.assertRaises(ValueError):
            derive_cohort_features(tx)


class OrderRankingTest(unittest.TestCase):
    def test_invoice_lines_collapse_to_one_order(self):
        ranked = rank_customer_orders(derive_cohort_features(_sample_transactions()))
        c1 = ranked[ranked["customer_id"] == "C1"]
        self.assertEqual(c1["invoice_no"].tolist(), ["536365", "539993", "548011"])
        self.assertEqual(c1["order_num"].tolist(), [1, 2, 3])

    def test_same_day_orders_ranked_by_timestamp(self):
        tx = pd.DataFrame(
            [
                _line("C9", "B200", datetime(2011, 5, 2, 15, 0)),
                _line("C9", "A100", datetime(2011, 5, 2, 9, 0)),
            ]
        )
        ranked = rank_customer_orders(derive_cohort_features(tx))
        self.assertEqual(ranked["invoice_no"].tolist(), ["A100", "B200"])
        self.assertEqual(days_to_second_order(ranked).loc["C9"], 0)

    def test_second_order_gap_in_days(self):
        day0 = datetime(2011, 1, 3, 12, 0)
        tx = pd.DataFrame(
            [
                _line("C7", "1", day0),
                _line("C7", "2", day0 + pd.Timedelta(days=50)),
                _line("C7", "3", day0 + pd.Timedelta(days=80)),
                _line("C8", "4", day0),
            ]
        )
        gaps = days_to_second_order(rank_customer_orders(derive_cohort_features(tx)))
        self.assertEqual(gaps.to_dict(), {"C7": 50.0})


if __name__ == "__main__":
    unittest.main()
