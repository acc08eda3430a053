"""
Configuration for the coffee-shop wait-time pipeline.
Paths, schema, model settings, and constants.
Override directories via WAIT_TIMES_DATA_DIR / WAIT_TIMES_REPORTS_DIR.
"""
import os
from dataclasses import dataclass
from pathlib import Path

# Project root (parent of wait_times/)
PROJECT_ROOT = Path(__file__).resolve().parent.parent

_data_dir = os.environ.get("WAIT_TIMES_DATA_DIR")
_reports_dir = os.environ.get("WAIT_TIMES_REPORTS_DIR")

# Data paths (raw data file is read-only)
DATA_DIR = Path(_data_dir) if _data_dir else (PROJECT_ROOT / "data")
DATA_FILE = DATA_DIR / "coffee_wait_times.dta"

# Output paths
REPORTS_DIR = Path(_reports_dir) if _reports_dir else (PROJECT_ROOT / "reports")

# Target and identifier columns
TARGET_COL = "wait_secs"
ID_COL = "customer"

# Free-text / unknown columns recorded per barista, never modeled
DROP_PREFIX = "barista"

# Declared predictors, in design-matrix order (numeric first, then categorical)
NUMERIC_FEATURES = [
    "age",          # Customer age in years
    "order_items",  # Items on the ticket
    "queue_length", # Customers ahead in line on arrival
    "hour",         # Hour of day the order was placed
]

CATEGORICAL_FEATURES = [
    "gender",
    "race",
    "weekday",
    "order_type",   # Drip / espresso / blended / food
]

# Validation settings
TRAIN_FRACTION = 0.9
RANDOM_STATE = 0
N_FOLDS = 10

# Penalty path settings
N_ALPHAS = 100
TOP_N_RIDGE = 20


@dataclass(frozen=True)
class PipelineConfig:
    """Run-time tunables; defaults come from the module constants."""

    data_path: Path = DATA_FILE
    output_dir: Path = REPORTS_DIR
    target_col: str = TARGET_COL
    id_col: str = ID_COL
    drop_prefix: str = DROP_PREFIX
    train_fraction: float = TRAIN_FRACTION
    random_state: int = RANDOM_STATE
    n_folds: int = N_FOLDS
    n_alphas: int = N_ALPHAS
    top_n_ridge: int = TOP_N_RIDGE
    n_jobs: int = 1
    make_plots: bool = True
