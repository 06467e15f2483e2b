# tests/test_cli_runner.py

"""Tests for the headless CLI commands."""

import json
import tempfile
import unittest
from pathlib import Path

from dealwatch.cli.runner import (
    build_app,
    load_items,
    run_health_check,
    run_ingest,
    run_promote,
    run_record_trends,
)
from dealwatch.errors import InvalidInputError
from dealwatch.services.job_runner import JOB_PROMOTE
from dealwatch.storage.master_product_repo import MasterProductRepository


class TestLoadItems(unittest.TestCase):
    """Tests for reading push payload files."""

    def setUp(self) -> None:
        self.tmp_dir = tempfile.TemporaryDirectory()
        self.dir = Path(self.tmp_dir.name)

    def tearDown(self) -> None:
        self.tmp_dir.cleanup()

    def _write(self, payload: object) -> Path:
        path = self.dir / "push.json"
        path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
        return path

    def test_plain_list(self) -> None:
        """A top-level list is the batch."""
        path = self._write([{"title": "奶茶", "price": 5}])
        self.assertEqual(len(load_items(path)), 1)

    def test_items_object(self) -> None:
        """The crawler envelope {"items": [...]} is unwrapped."""
        path = self._write({"items": [{"title": "a"}, {"title": "b"}]})
        self.assertEqual(len(load_items(path)), 2)

    def test_bad_shapes(self) -> None:
        """Non-list payloads, bad JSON and missing files are invalid."""
        with self.assertRaises(InvalidInputError):
            load_items(self._write({"data": []}))
        bad = self.dir / "bad.json"
        bad.write_text("{not json", encoding="utf-8")
        with self.assertRaises(InvalidInputError):
            load_items(bad)
        with self.assertRaises(InvalidInputError):
            load_items(self.dir / "missing.json")


class TestCommands(unittest.TestCase):
    """Runs the commands against a temp database."""

    def setUp(self) -> None:
        self.tmp_dir = tempfile.TemporaryDirectory()
        self.dir = Path(self.tmp_dir.name)
        self.app = build_app(self.dir / "cli.db")

    def tearDown(self) -> None:
        self.app.close()
        self.tmp_dir.cleanup()

    def test_ingest_then_promote(self) -> None:
        """Three pushed sightings become one master after --promote."""
        path = self.dir / "push.json"
        path.write_text(json.dumps({"items": [
            {"title": "蜜雪冰城柠檬水大杯", "price": 5, "status": 1,
             "region": "杭州"},
        ] * 3}, ensure_ascii=False), encoding="utf-8")

        self.assertEqual(run_ingest(self.app, path), 0)
        self.assertEqual(run_promote(self.app), 0)
        masters = MasterProductRepository(self.app.db).list_all()
        self.assertEqual(len(masters), 1)
        self.assertEqual(masters[0].trust_score, 3)

    def test_ingest_bad_file_fails(self) -> None:
        """A missing file is exit code 1."""
        self.assertEqual(run_ingest(self.app, self.dir / "nope.json"), 1)

    def test_health_reflects_runs(self) -> None:
        """Health is unhealthy until every job has run."""
        self.assertEqual(run_health_check(self.app), 1)
        self.assertEqual(run_record_trends(self.app), 0)
        results = {r.job_name: r.status for r in self.app.health.check_all()}
        self.assertEqual(results["record-trends"], "ok")
        self.assertEqual(results[JOB_PROMOTE], "never")


if __name__ == "__main__":
    unittest.main()
