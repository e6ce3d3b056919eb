"""Tests for the pipeline orchestrator and its click CLI."""

import sys

import pandas as pd
import pytest
from click.testing import CliRunner
from loguru import logger

from ops.config_loader import Config
from ops.run_pipeline import ConfigContext, ConfigOverride, cli, run_map_pipeline
from processing.errors import ConfigurationError


@pytest.fixture(autouse=True)
def restore_logging():
    yield
    # The CLI replaces every loguru sink with one bound to the runner's stream
    logger.remove()
    logger.add(sys.stderr, level="WARNING")


@pytest.fixture
def runner():
    return CliRunner()


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("visualization.bins=5", ("visualization.bins", 5)),
        ("visualization.fill_opacity=0.5", ("visualization.fill_opacity", 0.5)),
        ("example.enabled=false", ("example.enabled", False)),
        ("visualization.secondary_metric=none", ("visualization.secondary_metric", None)),
        ("visualization.palette=viridis", ("visualization.palette", "viridis")),
    ],
)
def test_config_override_parses_types(raw, expected):
    assert ConfigOverride().convert(raw, None, None) == expected


def test_config_context_builds_nested_overrides():
    ctx = ConfigContext()
    ctx.add_override("visualization.bins", 4)
    ctx.add_override("visualization.palette", "Blues")

    assert ctx.overrides == {"visualization": {"bins": 4, "palette": "Blues"}}


def test_run_map_pipeline_writes_all_artifacts(config_file, tmp_path):
    report = run_map_pipeline(Config(config_file))

    assert report.ok
    out = tmp_path / "out"
    assert (out / "interactive_geospatial_map.html").exists()
    assert (out / "static_choropleth.png").exists()
    table = pd.read_csv(out / "region_metrics_export.csv")
    assert table["name"].tolist() == ["A", "B", "C"]


def test_run_map_pipeline_joins_external_metrics(config_file, tmp_path):
    metrics = tmp_path / "metrics.csv"
    metrics.write_text("Name,Births\nA,10\nC,30\n", encoding="utf-8")
    config = Config(
        config_file,
        overrides={
            "input_files": {"metrics_csv": str(metrics)},
            "visualization": {"metric": "births"},
        },
    )

    report = run_map_pipeline(config)

    assert report.ok
    table = pd.read_csv(tmp_path / "out" / "region_metrics_export.csv")
    assert list(table.columns) == ["region_id", "name", "births"]
    assert table["births"].isna().tolist() == [False, True, False]


def test_invalid_points_disable_only_the_overlay(config_file, tmp_path, log_messages):
    points = tmp_path / "points.csv"
    points.write_text("lat,name\n0.5,Clinic\n", encoding="utf-8")
    config = Config(config_file, overrides={"input_files": {"points_csv": str(points)}})

    report = run_map_pipeline(config)

    assert report.ok
    assert any("Point overlay disabled" in message for message in log_messages)


def test_run_map_pipeline_without_geometry_source(config_file):
    config = Config(config_file, overrides={"input_files": {"geometry": None}})

    with pytest.raises(ConfigurationError):
        run_map_pipeline(config)


def test_cli_runs_pipeline(runner, config_file, tmp_path):
    result = runner.invoke(cli, ["--config", str(config_file)])

    assert result.exit_code == 0
    assert (tmp_path / "out" / "region_metrics_export.csv").exists()


def test_cli_output_options(runner, config_file, tmp_path):
    html_out = tmp_path / "custom" / "map.html"

    result = runner.invoke(cli, ["--config", str(config_file), "--html-out", str(html_out)])

    assert result.exit_code == 0
    assert html_out.exists()


def test_cli_geometry_option_disables_example(runner, tmp_path, geometry_file, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("PIPELINE_CONFIG_PATH", raising=False)

    result = runner.invoke(
        cli,
        [
            "--geometry",
            str(geometry_file),
            "--set",
            f"directories.output={tmp_path / 'cli'}",
            "--set",
            "visualization.static_dpi=50",
        ],
    )

    assert result.exit_code == 0
    assert (tmp_path / "cli" / "static_choropleth.png").exists()


def test_cli_missing_metric_exits_with_error(runner, config_file, tmp_path):
    result = runner.invoke(cli, ["--config", str(config_file), "--metric", "pollution_index"])

    assert result.exit_code == 1
    assert not (tmp_path / "out" / "interactive_geospatial_map.html").exists()


def test_cli_no_geometry_source_exits_with_error(runner, config_file):
    result = runner.invoke(cli, ["--config", str(config_file), "--set", "input_files.geometry=none"])

    assert result.exit_code == 1


def test_cli_failed_export_exits_with_distinct_code(runner, config_file, tmp_path, monkeypatch):
    def denied(*args, **kwargs):
        raise PermissionError("read-only filesystem")

    monkeypatch.setattr("rendering.static_map.plt.savefig", denied)

    result = runner.invoke(cli, ["--config", str(config_file)])

    assert result.exit_code == 2
    assert (tmp_path / "out" / "region_metrics_export.csv").exists()


def test_cli_dry_run_writes_nothing(runner, config_file, tmp_path):
    result = runner.invoke(cli, ["--config", str(config_file), "--dry-run"])

    assert result.exit_code == 0
    assert not (tmp_path / "out").exists()


def test_cli_summary(runner, config_file):
    result = runner.invoke(cli, ["--config", str(config_file), "summary"])

    assert result.exit_code == 0


def test_cli_rejects_malformed_override(runner, config_file):
    result = runner.invoke(cli, ["--config", str(config_file), "--set", "visualization.bins"])

    assert result.exit_code == 2
    assert "KEY=VALUE" in result.output


def test_cli_null_secondary_metric_drops_it_from_export(runner, config_file, tmp_path):
    metrics = tmp_path / "metrics.csv"
    metrics.write_text("name,pollution_index\nA,12.5\nB,40\nC,70\n", encoding="utf-8")
    export = tmp_path / "out" / "region_metrics_export.csv"
    base_args = ["--config", str(config_file), "--metrics-csv", str(metrics)]

    with_secondary = runner.invoke(cli, base_args + ["--secondary-metric", "pollution_index"])
    assert with_secondary.exit_code == 0
    assert export.read_text(encoding="utf-8").splitlines()[0] == "region_id,name,crime_rate,pollution_index"

    without = runner.invoke(cli, base_args + ["--set", "visualization.secondary_metric=null"])
    assert without.exit_code == 0
    assert export.read_text(encoding="utf-8").splitlines()[0] == "region_id,name,crime_rate"
