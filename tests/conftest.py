import numpy as np
import pandas as pd
import pytest

from wait_times.features import FeatureSchema


def make_wait_table(n: int = 200, seed: int = 0) -> pd.DataFrame:
    """Synthetic coffee-shop transactions with a known log-linear wait time."""
    rng = np.random.default_rng(seed)
    df = pd.DataFrame(
        {
            "customer": np.arange(1, n + 1),
            "age": rng.integers(18, 70, n).astype(float),
            "order_items": rng.integers(1, 6, n).astype(float),
            "queue_length": rng.integers(0, 10, n).astype(float),
            "hour": rng.integers(6, 20, n).astype(float),
            "gender": rng.choice(["female", "male"], n),
            "race": rng.choice(["asian", "black", "hispanic", "white"], n),
            "weekday": rng.choice(["weekday", "weekend"], n),
            "order_type": rng.choice(["blended", "drip", "espresso"], n),
            "barista_name": rng.choice(["ana", "bo", "cy"], n),
            "barista_shift": rng.integers(1, 4, n),
        }
    )
    log_wait = (
        4.0
        + 0.15 * df["queue_length"]
        + 0.10 * df["order_items"]
        + 0.30 * (df["order_type"] == "blended")
        + rng.normal(0, 0.2, n)
    )
    df["wait_secs"] = np.exp(log_wait).round(1)
    return df


@pytest.fixture
def wait_table() -> pd.DataFrame:
    return make_wait_table()


@pytest.fixture
def schema() -> FeatureSchema:
    return FeatureSchema.from_lists(
        numeric=["age", "order_items", "queue_length", "hour"],
        categorical=["gender", "race", "weekday", "order_type"],
    )


@pytest.fixture
def regression_data():
    """Dense numeric design with three informative and three noise columns."""
    rng = np.random.default_rng(1)
    X = pd.DataFrame(rng.normal(size=(120, 6)), columns=[f"x{i}" for i in range(6)])
    y = 1.5 + 2.0 * X["x0"] - 1.0 * X["x1"] + 0.5 * X["x2"] + rng.normal(0, 0.3, 120)
    return X, y
