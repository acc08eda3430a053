"""
Training pipeline.
Wires data, preprocess, features, model, evaluate, and report together.
1) Load and clean the observation table
2) Build the interaction design matrix on log(wait_secs)
3) OLS baseline on a seeded 90/10 split
4) Lasso and Ridge with 10-fold CV over a penalty path, on the full table
5) Write tables, plots, and metrics
"""
import argparse
import dataclasses
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd

from wait_times.config import (
    N_ALPHAS,
    N_FOLDS,
    RANDOM_STATE,
    TOP_N_RIDGE,
    TRAIN_FRACTION,
    PipelineConfig,
)
from wait_times.data import load_observations, split_X_y, train_test_indices
from wait_times.errors import PipelineError, TargetError
from wait_times.evaluate import (
    CVResult,
    cross_validate_path,
    deviance,
    null_deviance,
    pseudo_r2,
    select_coefficients,
)
from wait_times.features import FeatureSchema, build_design_matrix, log_target
from wait_times.model import L1, L2, FittedModel, PenalizedPath, fit_ols, fit_penalized_path, penalty_path
from wait_times.preprocess import clean
from wait_times.report import write_reports

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class BaselineResult:
    model: FittedModel
    train_idx: np.ndarray
    test_idx: np.ndarray
    model_deviance: float
    null_deviance: float
    pseudo_r2: float


@dataclass(frozen=True, eq=False)
class RegularizedResult:
    cv: CVResult
    path: PenalizedPath
    model: FittedModel
    coefficients: pd.Series

    @property
    def pseudo_r2(self) -> float:
        return self.cv.pseudo_r2


@dataclass(frozen=True, eq=False)
class PipelineResult:
    table: pd.DataFrame
    X: pd.DataFrame
    y_log: pd.Series
    baseline: BaselineResult
    lasso: RegularizedResult
    ridge: RegularizedResult

    def metrics(self) -> dict:
        """Flat, JSON-serializable run summary."""
        out = {
            "n_rows": int(self.X.shape[0]),
            "n_features": int(self.X.shape[1]),
            "ols": {
                "n_train": int(len(self.baseline.train_idx)),
                "n_test": int(len(self.baseline.test_idx)),
                "model_deviance": self.baseline.model_deviance,
                "null_deviance": self.baseline.null_deviance,
                "pseudo_r2": self.baseline.pseudo_r2,
            },
        }
        for name, res in (("lasso", self.lasso), ("ridge", self.ridge)):
            out[name] = {
                "alpha": res.cv.best_alpha,
                "path_index": res.cv.best_index,
                "n_alphas": int(len(res.cv.alphas)),
                "alpha_1se": res.cv.alpha_1se,
                "path_index_1se": res.cv.index_1se,
                "cv_deviance": float(res.cv.mean[res.cv.best_index]),
                "cv_null_deviance": float(res.cv.mean[0]),
                "pseudo_r2": res.pseudo_r2,
                "n_nonzero": int(np.count_nonzero(res.model.coef)),
            }
        return out


def run_baseline(
    X: pd.DataFrame,
    y_log: pd.Series,
    train_fraction: float = TRAIN_FRACTION,
    random_state: int = RANDOM_STATE,
) -> BaselineResult:
    """OLS on the training split; deviance and pseudo-R^2 on the held-out split."""
    train_idx, test_idx = train_test_indices(len(X), train_fraction, random_state)
    X_train, X_test = X.iloc[train_idx], X.iloc[test_idx]
    y_train, y_test = y_log.iloc[train_idx], y_log.iloc[test_idx]

    model = fit_ols(X_train, y_train)
    model_dev = deviance(y_test, model.predict(X_test))
    null_dev = null_deviance(y_test, float(y_train.mean()))
    r2 = pseudo_r2(model_dev, null_dev)

    logger.info(
        "OLS on %d train / %d test rows: deviance %.4f vs null %.4f, out-of-sample R^2 %.4f",
        len(train_idx),
        len(test_idx),
        model_dev,
        null_dev,
        r2,
    )
    return BaselineResult(
        model=model,
        train_idx=train_idx,
        test_idx=test_idx,
        model_deviance=model_dev,
        null_deviance=null_dev,
        pseudo_r2=r2,
    )


def run_regularized(
    X: pd.DataFrame,
    y_log: pd.Series,
    penalty: str = L1,
    n_folds: int = N_FOLDS,
    random_state: int = RANDOM_STATE,
    n_alphas: int = N_ALPHAS,
    n_jobs: int = 1,
    top_n: Optional[int] = None,
) -> RegularizedResult:
    """
    Cross-validate a Lasso (L1) or Ridge (L2) path on every row of X, then
    refit the path on all rows and keep the model at the selected penalty.
    """
    alphas = penalty_path(X, y_log, penalty=penalty, n_alphas=n_alphas)
    cv = cross_validate_path(
        X, y_log, alphas, penalty=penalty, n_folds=n_folds, random_state=random_state, n_jobs=n_jobs
    )
    path = fit_penalized_path(X, y_log, alphas, penalty=penalty)
    model = path.model_at(cv.best_index)
    coefs = select_coefficients(model, nonzero_only=(penalty == L1), top_n=top_n)

    logger.info(
        "%s: CV R^2 %.4f, %d nonzero of %d coefficients",
        model.name,
        cv.pseudo_r2,
        np.count_nonzero(model.coef),
        len(model.coef),
    )
    return RegularizedResult(cv=cv, path=path, model=model, coefficients=coefs)


def run_pipeline(
    config: PipelineConfig = PipelineConfig(),
    schema: Optional[FeatureSchema] = None,
    df: Optional[pd.DataFrame] = None,
) -> PipelineResult:
    """
    Full pipeline. `df` skips loading (the raw table is used as given).
    Writes reports to config.output_dir and returns every intermediate result.
    """
    schema = schema or FeatureSchema.from_lists()

    # 1. Load and clean
    if df is None:
        df = load_observations(config.data_path)
    table = clean(df, categorical=schema.categorical, drop_prefix=config.drop_prefix)
    predictors, y = split_X_y(table, target_col=config.target_col, id_col=config.id_col)
    if y is None:
        raise TargetError(f"Target column '{config.target_col}' not in data")

    # 2. Target and design matrix
    y_log = log_target(y)
    X = build_design_matrix(predictors, schema, exclude=(config.target_col, config.id_col))

    # 3. OLS baseline on the split
    baseline = run_baseline(X, y_log, config.train_fraction, config.random_state)

    # 4. Regularized models on the full table
    logger.warning(
        "Lasso/Ridge are cross-validated on all %d rows, not the OLS split; "
        "their R^2 is not directly comparable to the OLS figure",
        len(X),
    )
    lasso = run_regularized(
        X, y_log, L1, config.n_folds, config.random_state, config.n_alphas, config.n_jobs
    )
    ridge = run_regularized(
        X, y_log, L2, config.n_folds, config.random_state, config.n_alphas, config.n_jobs,
        top_n=config.top_n_ridge,
    )

    result = PipelineResult(
        table=table, X=X, y_log=y_log, baseline=baseline, lasso=lasso, ridge=ridge
    )

    # 5. Reports
    write_reports(result, config.output_dir, target_col=config.target_col, make_plots=config.make_plots)
    return result


def build_arg_parser():
    """CLI parser with knobs for data, split, CV, and output."""
    defaults = PipelineConfig()
    parser = argparse.ArgumentParser(
        description="Model coffee-shop wait times with OLS, Lasso, and Ridge."
    )
    parser.add_argument("--data-path", type=Path, default=defaults.data_path)
    parser.add_argument("--output-dir", type=Path, default=defaults.output_dir)
    parser.add_argument("--train-fraction", type=float, default=TRAIN_FRACTION)
    parser.add_argument("--random-state", type=int, default=RANDOM_STATE, help="Seed for split and folds.")
    parser.add_argument("--n-folds", type=int, default=N_FOLDS)
    parser.add_argument("--n-alphas", type=int, default=N_ALPHAS, help="Penalties per path.")
    parser.add_argument("--n-jobs", type=int, default=1, help="Parallel CV folds (results are identical).")
    parser.add_argument("--top-n", type=int, default=TOP_N_RIDGE, help="Ridge coefficients to report.")
    parser.add_argument("--no-plots", action="store_true")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser


def main(argv=None) -> int:
    args = build_arg_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = dataclasses.replace(
        PipelineConfig(),
        data_path=args.data_path,
        output_dir=args.output_dir,
        train_fraction=args.train_fraction,
        random_state=args.random_state,
        n_folds=args.n_folds,
        n_alphas=args.n_alphas,
        n_jobs=args.n_jobs,
        top_n_ridge=args.top_n,
        make_plots=not args.no_plots,
    )

    try:
        result = run_pipeline(config)
    except PipelineError as e:
        logger.error("Pipeline aborted: %s", e)
        return 1

    m = result.metrics()
    print(f"OLS out-of-sample R^2:   {m['ols']['pseudo_r2']:.4f}")
    print(f"Lasso CV R^2:            {m['lasso']['pseudo_r2']:.4f} (alpha={m['lasso']['alpha']:.4g})")
    print(f"Ridge CV R^2:            {m['ridge']['pseudo_r2']:.4f} (alpha={m['ridge']['alpha']:.4g})")
    print(f"Reports written to {config.output_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
