"""
Evaluation module.
Out-of-sample deviance, pseudo-R^2, and k-fold cross-validation over a penalty path.
Exposes: deviance(...), pseudo_r2(...), cross_validate_path(...), select_coefficients(...)
"""
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from sklearn.model_selection import KFold

from wait_times.config import N_FOLDS, RANDOM_STATE
from wait_times.errors import CrossValidationError
from wait_times.model import L1, FittedModel, fit_penalized_path

logger = logging.getLogger(__name__)


def deviance(y_true, y_pred) -> float:
    """Sum of squared residuals."""
    resid = np.asarray(y_true, dtype=float) - np.asarray(y_pred, dtype=float)
    return float(np.sum(resid ** 2))


def null_deviance(y_true, baseline: float) -> float:
    """Deviance of predicting the constant `baseline` for every row."""
    y_true = np.asarray(y_true, dtype=float)
    return deviance(y_true, np.full_like(y_true, baseline))


def pseudo_r2(model_deviance: float, null_dev: float) -> float:
    """1 - model deviance / null deviance. NaN when the null deviance is zero."""
    if null_dev <= 0:
        logger.warning("Null deviance is %s; pseudo-R^2 undefined", null_dev)
        return float("nan")
    return 1.0 - model_deviance / null_dev


@dataclass(frozen=True, eq=False)
class CVResult:
    """Held-out deviance along a penalty path (rows = folds, columns = penalties)."""

    penalty: str
    alphas: np.ndarray
    fold_deviance: np.ndarray
    mean: np.ndarray
    std_error: np.ndarray
    best_index: int
    index_1se: int

    @property
    def best_alpha(self) -> float:
        return float(self.alphas[self.best_index])

    @property
    def alpha_1se(self) -> float:
        return float(self.alphas[self.index_1se])

    @property
    def pseudo_r2(self) -> float:
        """Selected-penalty CV deviance against the first (null) point of the path."""
        return pseudo_r2(float(self.mean[self.best_index]), float(self.mean[0]))


def make_folds(
    n: int, n_folds: int = N_FOLDS, random_state: int = RANDOM_STATE
) -> List[Tuple[np.ndarray, np.ndarray]]:
    """Seeded, shuffled k-fold assignment of row positions 0..n-1."""
    if n_folds < 2:
        raise CrossValidationError(f"Need at least 2 folds, got {n_folds}")
    if n < n_folds:
        raise CrossValidationError(f"Cannot form {n_folds} folds from {n} rows")
    cv = KFold(n_splits=n_folds, shuffle=True, random_state=random_state)
    return list(cv.split(np.arange(n)))


def _fold_deviance(X, y, train_idx, test_idx, alphas, penalty) -> np.ndarray:
    path = fit_penalized_path(X[train_idx], y[train_idx], alphas, penalty=penalty)
    preds = path.predict(X[test_idx])
    resid = y[test_idx][:, None] - preds
    return np.mean(resid ** 2, axis=0)


def cross_validate_path(
    X,
    y,
    alphas: Sequence[float],
    penalty: str = L1,
    n_folds: int = N_FOLDS,
    random_state: int = RANDOM_STATE,
    n_jobs: int = 1,
) -> CVResult:
    """
    Run k-fold cross-validation over the whole penalty path.

    Each fold fits every penalty on its training rows and records held-out
    mean squared deviance. Fold results are combined only after every fold has
    finished, so n_jobs does not change the outcome. The selected penalty is the
    strict minimum of the mean curve (ties go to the larger penalty).
    """
    X_arr = np.asarray(X, dtype=float)
    y_arr = np.asarray(y, dtype=float)
    alphas = np.asarray(alphas, dtype=float)
    folds = make_folds(len(y_arr), n_folds=n_folds, random_state=random_state)

    per_fold = Parallel(n_jobs=n_jobs)(
        delayed(_fold_deviance)(X_arr, y_arr, tr, te, alphas, penalty) for tr, te in folds
    )
    fold_dev = np.vstack(per_fold)
    sizes = np.array([len(te) for _, te in folds], dtype=float)

    mean = np.average(fold_dev, axis=0, weights=sizes)
    spread = np.average((fold_dev - mean) ** 2, axis=0, weights=sizes)
    std_error = np.sqrt(spread / (len(folds) - 1))

    best_index = int(np.argmin(mean))
    within = np.flatnonzero(mean <= mean[best_index] + std_error[best_index])
    index_1se = int(within[0])

    logger.info(
        "%s CV: selected alpha=%.6g (path index %d of %d), 1-SE alpha=%.6g",
        penalty,
        alphas[best_index],
        best_index,
        len(alphas),
        alphas[index_1se],
    )
    return CVResult(
        penalty=penalty,
        alphas=alphas,
        fold_deviance=fold_dev,
        mean=mean,
        std_error=std_error,
        best_index=best_index,
        index_1se=index_1se,
    )


def select_coefficients(
    model: FittedModel, nonzero_only: bool = False, top_n: Optional[int] = None
) -> pd.Series:
    """
    Coefficients of a fitted model (intercept excluded), sorted by value
    descending. `nonzero_only` keeps exact nonzeros; `top_n` keeps the N
    largest by absolute value before sorting.
    """
    coefs = model.coefficients
    if nonzero_only:
        coefs = coefs[coefs != 0]
    if top_n is not None:
        coefs = coefs.loc[coefs.abs().sort_values(ascending=False).index[:top_n]]
    return coefs.sort_values(ascending=False)
