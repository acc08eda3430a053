"""
Model module.
Defines the OLS baseline and the Lasso / Ridge penalty paths.
Exposes: build_model(...), fit_ols(...), penalty_path(...), fit_penalized_path(...)
"""
import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.linear_model import Lasso, LinearRegression, Ridge
from sklearn.preprocessing import StandardScaler

logger = logging.getLogger(__name__)

L1 = "l1"
L2 = "l2"

# glmnet-style grid: ridge path starts where a lasso with mixing 1e-3 would
_RIDGE_MIX = 1e-3


@dataclass(frozen=True, eq=False)
class FittedModel:
    """Coefficients in original feature units plus intercept."""

    name: str
    feature_names: Tuple[str, ...]
    coef: np.ndarray
    intercept: float
    alpha: Optional[float] = None

    def predict(self, X) -> np.ndarray:
        if isinstance(X, pd.DataFrame) and tuple(X.columns) != self.feature_names:
            raise ValueError(f"{self.name}: design matrix columns do not match the fitted schema")
        return np.asarray(X, dtype=float) @ self.coef + self.intercept

    @property
    def coefficients(self) -> pd.Series:
        return pd.Series(self.coef, index=list(self.feature_names), name=self.name)


@dataclass(frozen=True, eq=False)
class PenalizedPath:
    """A Lasso or Ridge fit at every penalty of a path (rows follow `alphas`)."""

    penalty: str
    feature_names: Tuple[str, ...]
    alphas: np.ndarray
    coefs: np.ndarray       # (n_alphas, n_features)
    intercepts: np.ndarray  # (n_alphas,)

    def predict(self, X) -> np.ndarray:
        """Predictions for every penalty, shape (n_rows, n_alphas)."""
        return np.asarray(X, dtype=float) @ self.coefs.T + self.intercepts

    def model_at(self, index: int) -> FittedModel:
        name = "lasso" if self.penalty == L1 else "ridge"
        return FittedModel(
            name=name,
            feature_names=self.feature_names,
            coef=self.coefs[index].copy(),
            intercept=float(self.intercepts[index]),
            alpha=float(self.alphas[index]),
        )


def build_model(penalty: str, alpha: float = 1.0, max_iter: int = 10000, **kwargs):
    """Build and return a penalized estimator for standardized features."""
    if penalty == L1:
        return Lasso(alpha=alpha, max_iter=max_iter, warm_start=True, **kwargs)
    if penalty == L2:
        return Ridge(alpha=alpha, **kwargs)
    raise ValueError(f"Unknown penalty: {penalty}")


def fit_ols(X: pd.DataFrame, y) -> FittedModel:
    """Ordinary least squares on every design-matrix column."""
    reg = LinearRegression().fit(X, y)
    return FittedModel(
        name="ols",
        feature_names=tuple(X.columns),
        coef=np.asarray(reg.coef_, dtype=float),
        intercept=float(reg.intercept_),
    )


def penalty_path(
    X,
    y,
    penalty: str = L1,
    n_alphas: int = 100,
    min_ratio: Optional[float] = None,
) -> np.ndarray:
    """
    Geometric, descending penalty grid.

    For L1 the first value is the smallest penalty that zeroes every
    standardized coefficient, so the path starts at the null model. The grid
    ends at min_ratio times that (1e-4 when n > p, else 1e-2). For L2 the top is
    scaled up by 1/1e-3 and converted to sklearn's Ridge objective (times n).
    """
    X_arr = np.asarray(X, dtype=float)
    y_arr = np.asarray(y, dtype=float)
    n, p = X_arr.shape

    Xs = StandardScaler().fit_transform(X_arr)
    alpha_max = float(np.max(np.abs(Xs.T @ (y_arr - y_arr.mean())))) / n if p else 0.0
    if alpha_max <= 0.0:
        logger.warning("Target is uncorrelated with every feature; using unit penalty scale")
        alpha_max = 1.0

    if min_ratio is None:
        min_ratio = 1e-4 if n > p else 1e-2

    if penalty == L2:
        alpha_max = n * alpha_max / _RIDGE_MIX
    elif penalty != L1:
        raise ValueError(f"Unknown penalty: {penalty}")

    return np.geomspace(alpha_max, alpha_max * min_ratio, num=n_alphas)


def fit_penalized_path(
    X: pd.DataFrame,
    y,
    alphas: Sequence[float],
    penalty: str = L1,
    max_iter: int = 10000,
) -> PenalizedPath:
    """
    Fit the estimator at every penalty on standardized features, then map the
    coefficients back to original feature units. Lasso fits are warm-started
    down the path, so `alphas` should be descending.
    """
    X_arr = np.asarray(X, dtype=float)
    y_arr = np.asarray(y, dtype=float)
    alphas = np.asarray(alphas, dtype=float)

    scaler = StandardScaler().fit(X_arr)
    Xs = scaler.transform(X_arr)

    coefs = np.zeros((len(alphas), X_arr.shape[1]))
    intercepts = np.zeros(len(alphas))

    est = build_model(penalty, alpha=alphas[0], max_iter=max_iter)
    for k, alpha in enumerate(alphas):
        est.set_params(alpha=alpha)
        est.fit(Xs, y_arr)

        raw_coef = est.coef_ / scaler.scale_
        coefs[k] = raw_coef
        intercepts[k] = est.intercept_ - np.sum(scaler.mean_ * raw_coef)

    names = tuple(X.columns) if isinstance(X, pd.DataFrame) else tuple(f"x{i}" for i in range(X_arr.shape[1]))
    return PenalizedPath(
        penalty=penalty,
        feature_names=names,
        alphas=alphas,
        coefs=coefs,
        intercepts=intercepts,
    )
