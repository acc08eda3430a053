import json

import numpy as np
import pytest

from wait_times.config import PipelineConfig
from wait_times.errors import TargetError
from wait_times.train import main, run_baseline, run_pipeline, run_regularized
from wait_times.features import FeatureSchema, build_design_matrix, log_target
from wait_times.model import L1, L2
from wait_times.preprocess import clean

from conftest import make_wait_table


def _config(tmp_path, **kwargs):
    return PipelineConfig(output_dir=tmp_path / "reports", n_alphas=20, **kwargs)


def test_run_baseline_split_sizes(wait_table, schema):
    table = clean(wait_table, categorical=schema.categorical)
    X = build_design_matrix(table, schema)
    y_log = log_target(table["wait_secs"])

    res = run_baseline(X, y_log, train_fraction=0.9, random_state=0)

    assert len(res.train_idx) == 180
    assert len(res.test_idx) == 20
    y_test = y_log.iloc[res.test_idx]
    y_train_mean = y_log.iloc[res.train_idx].mean()
    assert res.null_deviance == pytest.approx(float(np.sum((y_test - y_train_mean) ** 2)))
    assert res.pseudo_r2 == pytest.approx(1 - res.model_deviance / res.null_deviance)


def test_run_regularized_lasso_and_ridge(wait_table, schema):
    table = clean(wait_table, categorical=schema.categorical)
    X = build_design_matrix(table, schema)
    y_log = log_target(table["wait_secs"])

    lasso = run_regularized(X, y_log, L1, n_folds=10, random_state=0, n_alphas=20)
    ridge = run_regularized(X, y_log, L2, n_folds=10, random_state=0, n_alphas=20, top_n=5)

    assert (lasso.coefficients != 0).all()
    assert lasso.coefficients.is_monotonic_decreasing
    assert "queue_length" in lasso.coefficients.index
    assert len(ridge.coefficients) == 5
    assert lasso.pseudo_r2 > 0.5
    assert ridge.pseudo_r2 > 0.5


def test_run_pipeline_writes_reports(tmp_path, wait_table, schema):
    config = _config(tmp_path)

    result = run_pipeline(config, schema=schema, df=wait_table)

    out = config.output_dir
    for name in [
        "summary_statistics.csv",
        "wait_time_comparison.csv",
        "coefficients_lasso.csv",
        "coefficients_ridge.csv",
        "metrics.json",
        "cv_lasso.png",
        "cv_ridge.png",
        "path_lasso.png",
        "predicted_vs_recorded.png",
        "wait_secs_distribution.png",
    ]:
        assert (out / name).is_file(), name

    metrics = json.loads((out / "metrics.json").read_text())
    assert metrics["ols"]["n_train"] == 180
    assert metrics["ols"]["n_test"] == 20
    assert metrics["lasso"]["path_index"] == result.lasso.cv.best_index
    assert metrics["ridge"]["n_alphas"] == 20
    assert not [c for c in result.X.columns if "barista" in c]


def test_run_pipeline_is_reproducible(tmp_path, wait_table, schema):
    first = run_pipeline(_config(tmp_path, make_plots=False), schema=schema, df=wait_table)
    second = run_pipeline(_config(tmp_path, make_plots=False), schema=schema, df=wait_table)

    assert np.array_equal(first.baseline.test_idx, second.baseline.test_idx)
    assert first.lasso.cv.best_index == second.lasso.cv.best_index
    np.testing.assert_allclose(first.ridge.cv.mean, second.ridge.cv.mean)


def test_run_pipeline_rejects_non_positive_target(tmp_path, schema):
    df = make_wait_table(60)
    df.loc[3, "wait_secs"] = 0.0

    with pytest.raises(TargetError):
        run_pipeline(_config(tmp_path), schema=schema, df=df)


def test_run_pipeline_requires_target(tmp_path, wait_table, schema):
    with pytest.raises(TargetError):
        run_pipeline(_config(tmp_path), schema=schema, df=wait_table.drop(columns=["wait_secs"]))


def test_main_missing_file_exits_nonzero(tmp_path):
    code = main(["--data-path", str(tmp_path / "missing.dta"), "--output-dir", str(tmp_path / "out")])

    assert code == 1


def test_main_runs_on_csv(tmp_path, capsys):
    path = tmp_path / "waits.csv"
    make_wait_table(150).to_csv(path, index=False)

    code = main(
        [
            "--data-path", str(path),
            "--output-dir", str(tmp_path / "out"),
            "--n-alphas", "15",
            "--no-plots",
        ]
    )

    assert code == 0
    assert "Lasso CV R^2" in capsys.readouterr().out
    assert (tmp_path / "out" / "metrics.json").is_file()
    assert not (tmp_path / "out" / "cv_lasso.png").exists()


def test_run_pipeline_keeps_id_out_of_design_matrix(tmp_path, wait_table):
    schema = FeatureSchema.from_lists(numeric=["customer", "queue_length"], categorical=["order_type"])

    result = run_pipeline(_config(tmp_path, make_plots=False), schema=schema, df=wait_table)

    assert not [c for c in result.X.columns if "customer" in c or "wait_secs" in c]
    assert list(result.X.columns[:3]) == ["queue_length", "order_typedrip", "order_typeespresso"]


def test_main_labelled_numeric_exits_nonzero(tmp_path):
    path = tmp_path / "waits.csv"
    df = make_wait_table(60)
    df["age"] = np.where(df["age"] < 40, "under 40", "40 plus")
    df.to_csv(path, index=False)

    code = main(["--data-path", str(path), "--output-dir", str(tmp_path / "out"), "--no-plots"])

    assert code == 1
