"""
report.py: summary tables and diagnostic plots for a pipeline run.

Pure presentation: nothing here feeds back into modeling.
Outputs go to the output directory (default ./reports/).
"""
import json
import logging
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from wait_times.config import TARGET_COL

logger = logging.getLogger(__name__)


# ----------------------------
# Tables
# ----------------------------

def describe_table(df: pd.DataFrame) -> pd.DataFrame:
    """Descriptive statistics for every column (numeric and categorical)."""
    return df.describe(include="all").T


def wait_time_comparison(result, target_col: str = TARGET_COL) -> pd.DataFrame:
    """
    Recorded vs predicted wait seconds on the OLS held-out rows.
    Lasso/Ridge were fit on every row, so their columns are in-sample.
    """
    test_idx = result.baseline.test_idx
    X_test = result.X.iloc[test_idx]
    out = pd.DataFrame(
        {
            "recorded_secs": result.table[target_col].iloc[test_idx].to_numpy(dtype=float),
            "ols_secs": np.exp(result.baseline.model.predict(X_test)),
            "lasso_secs": np.exp(result.lasso.model.predict(X_test)),
            "ridge_secs": np.exp(result.ridge.model.predict(X_test)),
        },
        index=result.table.index[test_idx],
    )
    return out.round(1)


def coefficient_table(coefs: pd.Series) -> pd.DataFrame:
    return coefs.rename("coefficient").rename_axis("term").reset_index()


# ----------------------------
# Plots
# ----------------------------

def _savefig(path: Path):
    plt.tight_layout()
    plt.savefig(path, dpi=140, bbox_inches="tight")
    plt.close()
    logger.info("saved: %s", path)


def plot_cv_curve(cv, path: Path, title: str):
    """Mean CV deviance (with standard-error bars) against log penalty."""
    log_alpha = np.log(cv.alphas)
    plt.figure(figsize=(8, 5))
    plt.errorbar(log_alpha, cv.mean, yerr=cv.std_error, fmt="o", ms=3, color="firebrick", ecolor="grey")
    plt.axvline(log_alpha[cv.best_index], ls="--", color="black", label="min CV deviance")
    plt.axvline(log_alpha[cv.index_1se], ls=":", color="black", label="1-SE")
    plt.xlabel("log(alpha)")
    plt.ylabel("Mean held-out deviance")
    plt.title(title)
    plt.legend(loc="best")
    _savefig(path)


def plot_coefficient_path(penalized_path, path: Path, title: str, best_alpha: float = None):
    """Coefficient trajectories along the penalty path."""
    log_alpha = np.log(penalized_path.alphas)
    plt.figure(figsize=(8, 5))
    plt.plot(log_alpha, penalized_path.coefs, lw=0.8)
    if best_alpha is not None:
        plt.axvline(np.log(best_alpha), ls="--", color="black")
    plt.xlabel("log(alpha)")
    plt.ylabel("Coefficient")
    plt.title(title)
    _savefig(path)


def plot_predicted_vs_recorded(comparison: pd.DataFrame, path: Path):
    plt.figure(figsize=(6, 6))
    for col in ["ols_secs", "lasso_secs", "ridge_secs"]:
        plt.scatter(comparison["recorded_secs"], comparison[col], s=14, alpha=0.7, label=col.split("_")[0])
    values = comparison.to_numpy()
    lim = [0, float(values[np.isfinite(values)].max()) * 1.05]
    plt.plot(lim, lim, color="grey", ls="--", lw=1)
    plt.xlabel("Recorded wait (s)")
    plt.ylabel("Predicted wait (s)")
    plt.title("Predicted vs recorded wait time")
    plt.legend(loc="upper left")
    _savefig(path)


def plot_target_distribution(y: pd.Series, path: Path):
    fig, axes = plt.subplots(1, 2, figsize=(10, 4))
    axes[0].hist(y, bins=40)
    axes[0].set_xlabel(f"{y.name}")
    axes[1].hist(np.log(y), bins=40)
    axes[1].set_xlabel(f"log({y.name})")
    fig.suptitle("Wait time distribution")
    _savefig(path)


# ----------------------------
# Entry point
# ----------------------------

def write_reports(result, output_dir: Path, target_col: str = TARGET_COL, make_plots: bool = True):
    """Write every table, plot, and metrics.json for a pipeline result."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    describe_table(result.table).to_csv(output_dir / "summary_statistics.csv")
    comparison = wait_time_comparison(result, target_col=target_col)
    comparison.to_csv(output_dir / "wait_time_comparison.csv")
    coefficient_table(result.lasso.coefficients).to_csv(output_dir / "coefficients_lasso.csv", index=False)
    coefficient_table(result.ridge.coefficients).to_csv(output_dir / "coefficients_ridge.csv", index=False)

    with open(output_dir / "metrics.json", "w", encoding="utf-8") as f:
        json.dump(result.metrics(), f, indent=2)

    if make_plots:
        plot_cv_curve(result.lasso.cv, output_dir / "cv_lasso.png", f"Lasso: {len(result.lasso.cv.fold_deviance)}-fold CV")
        plot_cv_curve(result.ridge.cv, output_dir / "cv_ridge.png", f"Ridge: {len(result.ridge.cv.fold_deviance)}-fold CV")
        plot_coefficient_path(
            result.lasso.path, output_dir / "path_lasso.png", "Lasso coefficient path", result.lasso.cv.best_alpha
        )
        plot_predicted_vs_recorded(comparison, output_dir / "predicted_vs_recorded.png")
        plot_target_distribution(result.table[target_col].astype(float), output_dir / "wait_secs_distribution.png")

    logger.info("Reports written to %s", output_dir)
