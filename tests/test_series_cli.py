from __future__ import annotations

from contextlib import redirect_stderr, redirect_stdout
import io
import json
from pathlib import Path
import tempfile
import unittest

from main import main

CONFIG = """
spec_id = "temp"
x_accessor = "day"
y_accessors = ["value"]

[fit]
type = "linear"
"""


class SeriesCliTests(unittest.TestCase):
    def _run(self, argv: list[str]) -> tuple[int, str, str]:
        out = io.StringIO()
        err = io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            code = main(argv)
        return code, out.getvalue(), err.getvalue()

    def test_fit_json_records(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            (root / "series.toml").write_text(CONFIG, encoding="utf-8")
            (root / "records.json").write_text(
                json.dumps([{"day": 1, "value": 2}, {"day": 2, "value": None}, {"day": 3, "value": 10}]),
                encoding="utf-8",
            )
            code, out, _ = self._run(["fit", str(root / "records.json"), "--config", str(root / "series.toml")])
        self.assertEqual(code, 0)
        payload = json.loads(out)
        data = payload["series"][0]["data"]
        self.assertEqual([d["y1"] for d in data], [2.0, 6.0, 10.0])
        self.assertEqual(data[1]["filled"]["y1"], {"strategy": "linear", "donor": 0})
        self.assertEqual(payload["domain"]["values"], [1, 2, 3])

    def test_fit_csv_records_with_override_and_full_only(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            (root / "series.toml").write_text(CONFIG, encoding="utf-8")
            (root / "records.csv").write_text("day,value\n1,\n2,5\n3,\n", encoding="utf-8")
            code, out, _ = self._run(
                [
                    "fit",
                    str(root / "records.csv"),
                    "--config",
                    str(root / "series.toml"),
                    "--fit",
                    "carry",
                    "--full-only",
                ]
            )
        self.assertEqual(code, 0)
        data = json.loads(out)["series"][0]["data"]
        self.assertEqual([(d["x"], d["y1"]) for d in data], [(2, 5.0), (3, 5.0)])
        self.assertEqual(data[1]["fitting_index"], 1)

    def test_fit_jsonl_records(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            (root / "series.toml").write_text(CONFIG, encoding="utf-8")
            (root / "records.jsonl").write_text('{"day": 1, "value": 1}\n\n{"day": 2, "value": 2}\n', encoding="utf-8")
            code, out, _ = self._run(["fit", str(root / "records.jsonl"), "--config", str(root / "series.toml")])
        self.assertEqual(code, 0)
        self.assertEqual(len(json.loads(out)["series"][0]["data"]), 2)

    def test_bundled_example_fits_every_position(self) -> None:
        example = Path(__file__).resolve().parents[1] / "examples" / "series_fit"
        code, out, _ = self._run(["fit", str(example / "records.csv"), "--config", str(example / "series.toml")])
        self.assertEqual(code, 0)
        payload = json.loads(out)
        self.assertEqual(payload["domain"]["values"], [0, 1, 2, 3, 4])
        by_key = {s["key"]: s for s in payload["series"]}
        web1 = [d["y1"] for d in by_key["cpu___load___web-1"]["data"]]
        web2 = [d["y1"] for d in by_key["cpu___load___web-2"]["data"]]
        self.assertAlmostEqual(web1[1], 0.515, places=9)
        self.assertAlmostEqual(web1[3], 0.595, places=9)
        self.assertEqual(web2[4], 0.35)
        self.assertTrue(by_key["cpu___load___web-2"]["data"][2]["filled"]["x"])

    def test_check_config_reports_parsed_fit(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "series.toml"
            path.write_text(CONFIG, encoding="utf-8")
            code, out, _ = self._run(["check-config", str(path)])
        self.assertEqual(code, 0)
        payload = json.loads(out)
        self.assertEqual(payload["fit"]["default"]["type"], "linear")
        self.assertEqual(payload["x_accessor"], "day")

    def test_bad_strategy_in_config_exits_with_error(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "series.toml"
            path.write_text(CONFIG.replace('"linear"', '"bogus"'), encoding="utf-8")
            code, _, err = self._run(["check-config", str(path)])
        self.assertEqual(code, 2)
        self.assertIn("bogus", err)


if __name__ == "__main__":
    unittest.main()
