"""
End-to-end tests for the command-line entrypoint.

Run with: pytest tests/test_main.py -v
"""

import json

import pytest

from main import main


class TestMain:
    def test_ingest_and_write_outputs(self, export_csv, tmp_path, capsys):
        snapshot = tmp_path / "snapshot.json"
        output_dir = tmp_path / "output"

        code = main([str(export_csv), "--preset", "all", "--snapshot", str(snapshot), "--output-dir", str(output_dir)])

        assert code == 0
        summary = json.loads((output_dir / "summary.json").read_text(encoding="utf-8"))
        assert summary["ingestion"]["valid_rows"] == 3
        assert summary["totals"]["spend"] == 180
        assert [row["ad_name"] for row in summary["creatives"]] == ["A", "B"]
        assert (output_dir / "summary.xlsx").exists()
        assert "Visão Geral" in capsys.readouterr().out

    def test_restores_snapshot_without_input(self, export_csv, tmp_path):
        snapshot = tmp_path / "snapshot.json"
        output_dir = tmp_path / "output"
        main([str(export_csv), "--preset", "all", "--snapshot", str(snapshot), "--output-dir", str(output_dir)])

        code = main(["--preset", "all", "--product", "SSPC", "--snapshot", str(snapshot), "--output-dir", str(output_dir)])

        summary = json.loads((output_dir / "summary.json").read_text(encoding="utf-8"))
        assert code == 0
        assert "ingestion" not in summary
        assert summary["totals"]["spend"] == 30

    def test_missing_input_exits_with_error(self, tmp_path, capsys):
        code = main([str(tmp_path / "missing.csv"), "--snapshot", str(tmp_path / "s.json")])

        assert code == 1
        assert "Ingestion failed" in capsys.readouterr().err

    def test_clear(self, export_csv, tmp_path):
        snapshot = tmp_path / "snapshot.json"
        main([str(export_csv), "--snapshot", str(snapshot), "--output-dir", str(tmp_path / "out")])

        assert main(["--clear", "--snapshot", str(snapshot)]) == 0
        assert json.loads(snapshot.read_text(encoding="utf-8")) == {}

    @pytest.mark.parametrize("value", ["-1", "0", "many"])
    def test_top_n_must_be_positive(self, value, tmp_path, capsys):
        with pytest.raises(SystemExit) as excinfo:
            main(["--top-n", value, "--snapshot", str(tmp_path / "s.json")])

        assert excinfo.value.code == 2
        assert "--top-n" in capsys.readouterr().err
