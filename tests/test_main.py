import json

from column_generation.main import main


def test_cli_solves_and_writes_results(data_dir, tmp_path, capsys):
    out = tmp_path / "results"
    code = main(["-i", str(data_dir / "example.txt"), "-s", "highs", "-o", str(out)])

    assert code == 0
    printed = capsys.readouterr().out
    assert "LP RELAXATION SUMMARY" in printed
    assert "Objective value:     57.2500" in printed

    solution = json.loads((out / "solution.json").read_text())
    assert abs(solution["objective"] - 57.25) < 1e-6
    assert solution["converged"] is True


def test_cli_integer(data_dir, tmp_path, capsys):
    out = tmp_path / "results"
    code = main(["-i", str(data_dir / "example.json"), "-s", "highs", "--integer", "-o", str(out)])

    assert code == 0
    assert "INTEGER SOLUTION SUMMARY" in capsys.readouterr().out
    solution = json.loads((out / "solution.json").read_text())
    assert solution["termination_reason"] == "integer"
    assert solution["objective"] >= 58


def test_cli_not_converged(data_dir, capsys):
    code = main(["-i", str(data_dir / "example.txt"), "-s", "highs", "-m", "1"])

    assert code == 2
    assert "NOT CONVERGED" in capsys.readouterr().out


def test_cli_missing_input(tmp_path):
    assert main(["-i", str(tmp_path / "missing.txt")]) == 1


def test_cli_invalid_instance(tmp_path):
    path = tmp_path / "bad.txt"
    path.write_text("100\n120 4\n")

    assert main(["-i", str(path), "-s", "highs"]) == 1
