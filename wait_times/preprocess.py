import logging
from typing import List, Sequence

import pandas as pd

from wait_times.config import CATEGORICAL_FEATURES, DROP_PREFIX
from wait_times.errors import EmptyDataError

logger = logging.getLogger(__name__)

# =============================================================================
# CLEANING STEPS
# =============================================================================
# Applied in a fixed order by clean():
#   1. drop rows with any missing value
#   2. drop the barista_* columns (meaning unknown, must not reach the model)
#   3. convert the declared categorical columns to pandas categoricals
#
# Reference level: the lowest-sorting level actually observed after step 1.
# It is stored as the first category, so indicator encoding skips it.


def drop_missing(df: pd.DataFrame) -> pd.DataFrame:
    """Remove every row with a missing value in any column."""
    out = df.dropna(axis=0, how="any")
    n_dropped = len(df) - len(out)
    if n_dropped:
        logger.info("Dropped %d of %d rows with missing values", n_dropped, len(df))
    if out.empty:
        raise EmptyDataError("No rows left after removing rows with missing values")
    return out


def drop_prefixed(df: pd.DataFrame, prefix: str = DROP_PREFIX) -> pd.DataFrame:
    """Remove every column whose name starts with `prefix`."""
    cols = [c for c in df.columns if str(c).startswith(prefix)]
    if cols:
        logger.info("Dropping %d '%s*' columns", len(cols), prefix)
    return df.drop(columns=cols)


def _observed_levels(s: pd.Series) -> List:
    if isinstance(s.dtype, pd.CategoricalDtype):
        # Stata/SPSS value labels can declare levels that never occur
        levels = [lvl for lvl in s.cat.categories if (s == lvl).any()]
    else:
        levels = s.unique().tolist()
    return sorted(levels)


def to_categorical(df: pd.DataFrame, columns: Sequence[str]) -> pd.DataFrame:
    """
    Convert `columns` to categorical dtype with sorted observed levels.

    The first category is the reference level. Columns with fewer than two
    observed levels carry no information and are dropped with a warning;
    columns absent from the table are skipped with a warning.
    """
    out = df.copy()

    for col in columns:
        if col not in out.columns:
            logger.warning("Categorical column '%s' not in table; skipping", col)
            continue

        levels = _observed_levels(out[col])
        if len(levels) < 2:
            logger.warning(
                "Dropping categorical column '%s': %d observed level(s)", col, len(levels)
            )
            out = out.drop(columns=[col])
            continue

        out[col] = pd.Categorical(out[col].astype(object), categories=levels)
        logger.debug("'%s' levels %s (reference %r)", col, levels, levels[0])

    return out


def clean(
    df: pd.DataFrame,
    categorical: Sequence[str] = CATEGORICAL_FEATURES,
    drop_prefix: str = DROP_PREFIX,
) -> pd.DataFrame:
    """
    Clean the observation table. The input DataFrame is not modified.

    Raises EmptyDataError if no complete rows remain.
    """
    out = drop_missing(df)
    out = drop_prefixed(out, prefix=drop_prefix)
    out = to_categorical(out, categorical)
    out = out.reset_index(drop=True)

    logger.info("Cleaned table shape: %s", out.shape)
    return out
