import logging
from dataclasses import dataclass
from itertools import combinations
from typing import Iterable, List, Sequence, Tuple

import numpy as np
import pandas as pd

from wait_times.config import (
    CATEGORICAL_FEATURES,
    ID_COL,
    NUMERIC_FEATURES,
    TARGET_COL,
)
from wait_times.errors import SchemaError, TargetError

logger = logging.getLogger(__name__)

NUMERIC = "numeric"
CATEGORICAL = "categorical"


@dataclass(frozen=True)
class Feature:
    name: str
    kind: str = NUMERIC

    def __post_init__(self):
        if self.kind not in (NUMERIC, CATEGORICAL):
            raise ValueError(f"Unknown feature kind '{self.kind}' for '{self.name}'")


@dataclass(frozen=True)
class FeatureSchema:
    """
    Ordered, declared list of predictors the design matrix is built from.

    Main-effect columns follow this order, so two schemas with the same
    features in the same order always produce the same column layout.
    """

    features: Tuple[Feature, ...]

    @classmethod
    def from_lists(
        cls,
        numeric: Sequence[str] = NUMERIC_FEATURES,
        categorical: Sequence[str] = CATEGORICAL_FEATURES,
    ) -> "FeatureSchema":
        feats = [Feature(c, NUMERIC) for c in numeric]
        feats += [Feature(c, CATEGORICAL) for c in categorical]
        return cls(tuple(feats))

    @property
    def names(self) -> List[str]:
        return [f.name for f in self.features]

    @property
    def categorical(self) -> List[str]:
        return [f.name for f in self.features if f.kind == CATEGORICAL]

    def restrict_to(self, columns: Iterable[str], exclude: Iterable[str] = ()) -> "FeatureSchema":
        """Drop declared features that are missing from `columns` or listed in `exclude`."""
        available = set(columns)
        excluded = set(exclude)
        kept = []
        for f in self.features:
            if f.name in excluded:
                continue
            if f.name not in available:
                logger.warning("Feature '%s' not in cleaned table; leaving it out", f.name)
                continue
            kept.append(f)
        return FeatureSchema(tuple(kept))


def _check_unique(columns: pd.Index):
    dupes = columns[columns.duplicated()].unique().tolist()
    if dupes:
        raise SchemaError(f"Design-matrix column name(s) generated more than once: {dupes}")


def main_effects(df: pd.DataFrame, schema: FeatureSchema) -> pd.DataFrame:
    """
    One float column per numeric feature; one 0/1 indicator per non-reference
    level of each categorical feature, named "{feature}{level}".
    """
    parts = []
    for feat in schema.features:
        s = df[feat.name]
        if feat.kind == NUMERIC:
            try:
                parts.append(pd.to_numeric(s).astype(float).rename(feat.name))
            except (ValueError, TypeError) as e:
                raise SchemaError(f"Numeric feature '{feat.name}' has non-numeric values: {e}") from e
            continue
        # Categories are sorted, so drop_first skips the reference level
        parts.append(pd.get_dummies(s, prefix=feat.name, prefix_sep="", drop_first=True, dtype=float))

    if not parts:
        return pd.DataFrame(index=df.index)
    main = pd.concat(parts, axis=1)
    _check_unique(main.columns)
    return main


def add_interactions(main: pd.DataFrame) -> pd.DataFrame:
    """
    Append one elementwise-product column per unordered pair of distinct
    main-effect columns, named "{left}:{right}", in combinations() order.
    """
    pairs = list(combinations(range(main.shape[1]), 2))
    if not pairs:
        return main.copy()

    left = [i for i, _ in pairs]
    right = [j for _, j in pairs]
    values = main.to_numpy(dtype=float)
    products = values[:, left] * values[:, right]

    names = [f"{main.columns[i]}:{main.columns[j]}" for i, j in pairs]
    inter = pd.DataFrame(products, columns=names, index=main.index)
    X = pd.concat([main, inter], axis=1)
    _check_unique(X.columns)
    return X


def build_design_matrix(
    df: pd.DataFrame,
    schema: FeatureSchema,
    exclude: Sequence[str] = (TARGET_COL, ID_COL),
) -> pd.DataFrame:
    """
    Expand the cleaned table into the degree-2 design matrix.

    Columns: p main effects (schema order) then C(p, 2) pairwise products.
    No intercept column; target and excluded columns never enter.
    """
    schema = schema.restrict_to(df.columns, exclude=exclude)
    main = main_effects(df, schema)
    X = add_interactions(main)

    logger.info(
        "Design matrix: %d rows, %d main effects + %d interactions",
        X.shape[0],
        main.shape[1],
        X.shape[1] - main.shape[1],
    )
    return X


def log_target(y: pd.Series) -> pd.Series:
    """Natural log of the target. Raises TargetError on non-positive values."""
    if y is None:
        raise TargetError("Target column is missing")
    y = pd.to_numeric(y).astype(float)
    n_bad = int((y <= 0).sum())
    if n_bad:
        raise TargetError(f"{n_bad} non-positive value(s) in '{y.name}'; log is undefined")
    return np.log(y)
