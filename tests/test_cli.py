import json
from pathlib import Path

import pandas as pd
import pytest

from abbucket.cli import main

EXAMPLE_CONFIG = str(Path(__file__).resolve().parents[1] / "examples" / "search_exp.yaml")


def test_stability_command(capsys):
    code = main(["--config", EXAMPLE_CONFIG, "stability", "search_exp", "1306810399759", "--iterations", "20"])

    assert code == 0
    lines = capsys.readouterr().out.strip().splitlines()
    assert len(lines) == 1
    outcome = json.loads(lines[0])
    assert outcome["selected_experiment"] == "Exact_match_test"
    assert outcome["selected_group"] == "control1"
    assert outcome["bucket"] == 54


def test_assign_command(tmp_path, capsys):
    src = tmp_path / "UserId.txt"
    src.write_text("1306810399759\nuser_56\n", encoding="utf-8")
    out = tmp_path / "out.csv"

    assert main(["--config", EXAMPLE_CONFIG, "assign", "search_exp", str(src), str(out)]) == 0
    summary = json.loads(capsys.readouterr().out)
    assert summary["total_users"] == 2
    assert pd.read_csv(out)["userId"].astype(str).tolist() == ["1306810399759", "user_56"]


def test_assign_command_annotate(tmp_path, capsys):
    src = tmp_path / "users.csv"
    src.write_text("first_id,lang\n1306810399759,zh\n", encoding="utf-8")
    out = tmp_path / "out.csv"

    assert main(["--config", EXAMPLE_CONFIG, "assign", "search_exp", str(src), str(out), "--annotate"]) == 0
    assert json.loads(capsys.readouterr().out)["written"] == 1
    assert pd.read_csv(out, dtype=str)["experiment_group_id"].tolist() == ["control1"]


def test_layer_info_command(capsys):
    assert main(["--config", EXAMPLE_CONFIG, "layer-info", "search_exp"]) == 0
    info = json.loads(capsys.readouterr().out)
    assert info["free_buckets"] == 50
    assert info["experiments"]["Spellcheck"]["buckets"] == "11-30"


def test_preview_command(capsys):
    assert main(["--config", EXAMPLE_CONFIG, "preview", "search_exp", "--users", "2000"]) == 0
    preview = json.loads(capsys.readouterr().out)
    assert preview["total_users"] == 2000


def test_missing_command():
    with pytest.raises(SystemExit):
        main(["--config", EXAMPLE_CONFIG])
