"""
Data loading utilities.
Loads the raw statistical file and provides the seeded train/test split.
"""
import logging
from pathlib import Path

import numpy as np
import pandas as pd
from sklearn.model_selection import train_test_split

from wait_times.config import (
    DATA_FILE,
    TARGET_COL,
    ID_COL,
    TRAIN_FRACTION,
    RANDOM_STATE,
)
from wait_times.errors import LoadError, SplitError

logger = logging.getLogger(__name__)


def _read_frame(path: Path) -> pd.DataFrame:
    suffix = path.suffix.lower()
    if suffix == ".dta":
        # Stata value labels become pandas categoricals
        return pd.read_stata(path, convert_categoricals=True)
    if suffix == ".sav":
        return pd.read_spss(path, convert_categoricals=True)
    if suffix == ".csv":
        return pd.read_csv(path)
    raise LoadError(f"Unsupported data file format '{suffix}': {path}")


def load_observations(path: Path | str = DATA_FILE) -> pd.DataFrame:
    """
    Load the observation table with column types taken from the file metadata.
    Raises LoadError if the file is missing, unreadable, or has zero rows.
    """
    path = Path(path)
    if not path.is_file():
        raise LoadError(f"Data file not found: {path}")

    try:
        df = _read_frame(path)
    except LoadError:
        raise
    except (OSError, ValueError, ImportError) as e:
        raise LoadError(f"Could not read {path}: {e}") from e

    if df.empty:
        raise LoadError(f"Data file has zero rows: {path}")

    logger.info("Loaded %s: %d rows x %d columns", path.name, *df.shape)
    return df


def split_X_y(
    df: pd.DataFrame, target_col: str = TARGET_COL, id_col: str = ID_COL
) -> tuple[pd.DataFrame, pd.Series | None]:
    """
    Separate the predictors from the target ahead of design-matrix expansion.
    The identifier never becomes a predictor; y is None when the target is absent.
    """
    cols_to_drop = [c for c in [id_col, target_col] if c in df.columns]
    X = df.drop(columns=cols_to_drop)
    y = df[target_col] if target_col in df.columns else None
    return X, y


def train_test_indices(
    n: int,
    train_fraction: float = TRAIN_FRACTION,
    random_state: int = RANDOM_STATE,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Partition row positions 0..n-1 into (train_idx, test_idx).

    The training side has round(n * train_fraction) rows sampled without
    replacement; the test side is the complement. Both are returned sorted.
    The same n and seed always give the same partition.
    """
    if not 0.0 < train_fraction < 1.0:
        raise SplitError(f"train_fraction must be in (0, 1), got {train_fraction}")

    n_train = int(round(n * train_fraction))
    if n_train < 1 or n_train >= n:
        raise SplitError(
            f"Cannot split {n} rows with train_fraction={train_fraction}: "
            f"{n_train} train / {n - n_train} test"
        )

    train_idx, test_idx = train_test_split(
        np.arange(n), train_size=n_train, random_state=random_state, shuffle=True
    )
    return np.sort(train_idx), np.sort(test_idx)
