from __future__ import annotations

import os
import tempfile
import unittest
from pathlib import Path
import sys
from unittest.mock import patch

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))
sys.path.insert(0, str(ROOT / "scripts"))

import pandas as pd
import yaml

from pipeline.task import Task
from run_pipeline import _build_tasks, _load_config, _resolve_entrypoint, select_targets
from utils.io import get_paths
from utils.settings import AnalysisSettings, load_settings


class TaskTest(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.base = Path(self.tmp.name)
        self.calls: list[str] = []

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def _writer(self, name: str, output: str):
        def run() -> None:
            self.calls.append(name)
            (self.base / output).write_text(name, encoding="utf-8")
        return run

    def test_dependencies_run_first_and_once(self):
        silver = Task("silver", self._writer("silver", "silver.csv"), outputs=["silver.csv"], base=self.base)
        gold_a = Task("gold_a", self._writer("gold_a", "a.parquet"), outputs=["a.parquet"],
                      requires=[silver], base=self.base)
        gold_b = Task("gold_b", self._writer("gold_b", "b.parquet"), outputs=["b.parquet"],
                      requires=[silver], base=self.base)
        gold_a.execute()
        gold_b.execute()
        gold_a.execute()
        self.assertEqual(self.calls, ["silver", "gold_a", "gold_b"])
        self.assertTrue(gold_b.has_run)

    def test_shared_chain_runs_once_per_invocation(self):
        bronze = Task("bronze", self._writer("bronze", "bronze.csv"), outputs=["bronze.csv"], base=self.base)
        silver = Task("silver", self._writer("silver", "silver.csv"), outputs=["silver.csv"],
                      requires=[bronze], base=self.base)
        g1 = Task("g1", self._writer("g1", "g1.parquet"), outputs=["g1.parquet"],
                  requires=[silver], base=self.base)
        g2 = Task("g2", self._writer("g2", "g2.parquet"), outputs=["g2.parquet"],
                  requires=[silver], base=self.base)
        for task in [bronze, silver, g1, g2]:
            task.execute()
        self.assertEqual(self.calls, ["bronze", "silver", "g1", "g2"])

    def test_missing_output_fails_task(self):
        task = Task("broken", lambda: None, outputs=["never.csv"], base=self.base)
        with self.assertRaises(FileNotFoundError):
            task.execute()
        self.assertFalse(task.has_run)


class PipelineConfigTest(unittest.TestCase):
    SPECS = {
        "transactions_features": {
            "layer": "silver",
            "entrypoint": "silver.build_transactions_features:main",
            "inputs": ["data/bronze/online_retail.csv"],
            "outputs": ["data/silver/online_retail_features.csv"],
        },
        "cohort_quality": {
            "layer": "gold",
            "entrypoint": "gold.build_cohort_quality:main",
            "inputs": ["data/silver/online_retail_features.csv"],
            "outputs": ["data/gold/cohort_quality.parquet"],
        },
    }

    def test_dependencies_resolved_from_outputs(self):
        tasks = _build_tasks(self.SPECS)
        self.assertEqual([t.name for t in tasks["cohort_quality"].requires], ["transactions_features"])
        self.assertEqual(tasks["transactions_features"].requires, [])

    def test_select_by_layer(self):
        tasks = _build_tasks(self.SPECS)
        self.assertEqual(select_targets(tasks, layer="gold"), ["cohort_quality"])
        self.assertEqual(select_targets(tasks), ["transactions_features", "cohort_quality"])

    def test_unknown_target_raises(self):
        tasks = _build_tasks(self.SPECS)
        with self.assertRaises(KeyError):
            select_targets(tasks, ["nope"])

    def test_bad_entrypoints(self):
        with self.assertRaises(ValueError):
            _resolve_entrypoint("gold.build_cohort_quality")
        with self.assertRaises(ValueError):
            _resolve_entrypoint("gold.build_cohort_quality:OUTPUT_PATH")

    def test_duplicate_outputs_rejected(self):
        specs = dict(self.SPECS)
        specs["copy"] = dict(self.SPECS["cohort_quality"])
        with self.assertRaises(ValueError):
            _build_tasks(specs)

    def test_repo_config_is_a_valid_graph(self):
        specs = _load_config(ROOT / "configs" / "artifacts.yml")
        tasks = _build_tasks(specs)
        summary_deps = {t.name for t in tasks["executive_summary"].requires}
        self.assertEqual(summary_deps, {"transactions_features", "customer_tables"})
        self.assertEqual([t.name for t in tasks["transactions_features"].requires], ["bronze_transactions"])


class SettingsTest(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        load_settings.cache_clear()

    def tearDown(self) -> None:
        load_settings.cache_clear()
        self.tmp.cleanup()

    def _write(self, payload: dict) -> Path:
        path = Path(self.tmp.name) / "analysis.yml"
        path.write_text(yaml.safe_dump(payload), encoding="utf-8")
        return path

    def test_yaml_overrides_defaults(self):
        settings = load_settings(self._write({"analysis": {"churn_threshold_days": 60}}))
        self.assertEqual(settings.churn_threshold_days, 60)
        self.assertEqual(settings.cancellation_prefix, "C")

    def test_unknown_key_rejected(self):
        with self.assertRaises(ValueError):
            load_settings(self._write({"analysis": {"churn_days": 60}}))

    def test_missing_file_uses_defaults(self):
        settings = load_settings(Path(self.tmp.name) / "absent.yml")
        self.assertEqual(settings, AnalysisSettings())

    def test_invalid_values_rejected(self):
        with self.assertRaises(ValueError):
            AnalysisSettings(churn_threshold_days=-1)

    def test_wrong_value_types_rejected(self):
        with self.assertRaises(ValueError):
            load_settings(self._write({"analysis": {"churn_threshold_days": "90"}}))
        with self.assertRaises(ValueError):
            AnalysisSettings(max_cohort_index=True)
        with self.assertRaises(ValueError):
            AnalysisSettings(drop_duplicate_lines="no")
        self.assertIsNone(AnalysisSettings(max_cohort_index=None).max_cohort_index)

    def test_repo_config_loads(self):
        settings = load_settings(ROOT / "configs" / "analysis.yml")
        self.assertEqual(settings.churn_threshold_days, 90)


class PathsTest(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        get_paths.cache_clear()

    def tearDown(self) -> None:
        get_paths.cache_clear()
        self.tmp.cleanup()

    def test_base_dir_from_environment(self):
        with patch.dict(os.environ, {"RETENTION_BASE_DIR": self.tmp.name}):
            paths = get_paths()
        self.assertEqual(paths.base, Path(self.tmp.name))
        self.assertEqual(paths.gold, Path(self.tmp.name) / "data" / "gold")

    def test_explicit_base_wins_over_environment(self):
        with patch.dict(os.environ, {"RETENTION_BASE_DIR": self.tmp.name}):
            paths = get_paths(ROOT)
        self.assertEqual(paths.base, ROOT)

    def test_defaults_to_repo_root(self):
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop("RETENTION_BASE_DIR", None)
            self.assertEqual(get_paths().base, ROOT)


class GoldQcTest(unittest.TestCase):
    def test_invariants_pass_on_consistent_tables(self):
        from qc_gold import run_checks

        data = {
            "retention_matrix": pd.DataFrame(
                {
                    "cohort_month": ["2011-01", "2011-01"],
                    "original_size": [3, 3],
                    "cohort_index": [0, 1],
                    "active_customers": [3, 2],
                    "retention_rate": [100.0, 66.67],
                }
            ),
            "cohort_quality": pd.DataFrame(
                {
                    "cohort_month": ["2011-01"],
                    "cohort_size": [3],
                    "one_time_buyers": [1],
                    "repeat_buyers": [2],
                    "one_time_share_pct": [33.3],
                }
            ),
            "churn_rate": pd.DataFrame({"churn_rate": [66.67], "active_rate": [33.33]}),
        }
        self.assertEqual(run_checks(data), [])

    def test_invariant_violations_reported(self):
        from qc_gold import run_checks

        data = {
            "retention_matrix": pd.DataFrame(
                {
                    "cohort_month": ["2011-01"],
                    "original_size": [3],
                    "cohort_index": [0],
                    "active_customers": [2],
                    "retention_rate": [66.67],
                }
            ),
            "cohort_quality": pd.DataFrame(
                {
                    "cohort_month": ["2011-01"],
                    "cohort_size": [4],
                    "one_time_buyers": [1],
                    "repeat_buyers": [2],
                    "one_time_share_pct": [25.0],
                }
            ),
            "churn_rate": pd.DataFrame({"churn_rate": [60.0], "active_rate": [30.0]}),
        }
        self.assertEqual(len(run_checks(data)), 4)


if __name__ == "__main__":
    unittest.main()
