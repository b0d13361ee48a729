from defect_xai.cli import main


def test_datasets_command(data_dir, capsys):
    assert main(["datasets", "--data-dir", str(data_dir)]) == 0
    assert "synthetic-1_0" in capsys.readouterr().out


def test_datasets_command_empty(tmp_path):
    assert main(["datasets", "--data-dir", str(tmp_path), "--config", str(tmp_path / "none.yaml")]) == 1


def test_select_features_prints_formula(config_file, capsys):
    assert main(["select-features", "--config", str(config_file)]) == 0
    assert "RealBug ~ " in capsys.readouterr().out


def test_run_with_overrides(config_file, tmp_path):
    out = tmp_path / "override"
    code = main([
        "run",
        "--config", str(config_file),
        "--output", str(out),
        "--resamples", "2",
        "--seed", "3",
    ])

    assert code == 0
    assert (out / "metrics.json").exists()
    assert (out / "explanations.jsonl").exists()


def test_run_failure_returns_nonzero(config_file):
    assert main(["run", "--config", str(config_file), "--dataset", "missing"]) == 1


def test_run_progress_flag(config_file, tmp_path, capsys):
    code = main([
        "run",
        "--config", str(config_file),
        "--output", str(tmp_path / "progress"),
        "--resamples", "2",
        "--progress",
    ])

    assert code == 0
    assert "resamples[random_forest]" in capsys.readouterr().err
