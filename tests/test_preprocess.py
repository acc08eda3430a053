import logging

import numpy as np
import pandas as pd
import pytest

from wait_times.errors import EmptyDataError
from wait_times.preprocess import clean, drop_missing, drop_prefixed, to_categorical


def _ten_rows_one_missing() -> pd.DataFrame:
    df = pd.DataFrame(
        {
            "customer": np.arange(10, dtype=float),
            "wait_secs": np.linspace(30, 300, 10),
            "gender": ["female", "male"] * 5,
        }
    )
    df.loc[4, :] = np.nan
    return df


def test_drop_missing_removes_fully_missing_row():
    out = drop_missing(_ten_rows_one_missing())

    assert len(out) == 9
    assert not out.isna().any().any()


def test_drop_missing_removes_partially_missing_rows(wait_table):
    df = wait_table.copy()
    df.loc[[3, 7], "age"] = np.nan

    out = drop_missing(df)

    assert len(out) == len(df) - 2


def test_drop_missing_all_rows_missing():
    df = pd.DataFrame({"a": [np.nan, 1.0], "b": [2.0, np.nan]})

    with pytest.raises(EmptyDataError):
        drop_missing(df)


def test_drop_prefixed(wait_table):
    out = drop_prefixed(wait_table, "barista")

    assert not [c for c in out.columns if c.startswith("barista")]
    assert len(out.columns) == len(wait_table.columns) - 2


def test_to_categorical_sorted_levels_reference_first():
    df = pd.DataFrame({"order_type": ["espresso", "drip", "blended", "drip"]})

    out = to_categorical(df, ["order_type"])

    assert isinstance(out["order_type"].dtype, pd.CategoricalDtype)
    assert list(out["order_type"].cat.categories) == ["blended", "drip", "espresso"]


def test_to_categorical_ignores_unobserved_declared_levels():
    s = pd.Categorical(["b", "c", "b"], categories=["a", "b", "c"])
    out = to_categorical(pd.DataFrame({"grp": s}), ["grp"])

    assert list(out["grp"].cat.categories) == ["b", "c"]


def test_to_categorical_drops_degenerate_column(caplog):
    df = pd.DataFrame({"gender": ["female"] * 4, "race": ["a", "b", "a", "b"]})

    with caplog.at_level(logging.WARNING):
        out = to_categorical(df, ["gender", "race"])

    assert "gender" not in out.columns
    assert "race" in out.columns
    assert "gender" in caplog.text


def test_to_categorical_skips_absent_column(caplog):
    df = pd.DataFrame({"race": ["a", "b"]})

    with caplog.at_level(logging.WARNING):
        out = to_categorical(df, ["weekday", "race"])

    assert list(out.columns) == ["race"]
    assert "weekday" in caplog.text


def test_clean_does_not_mutate_input(wait_table):
    df = wait_table.copy()
    df.loc[0, "hour"] = np.nan
    before = df.copy()

    clean(df, categorical=["gender", "race"])

    pd.testing.assert_frame_equal(df, before)


def test_clean_drops_missing_before_barista_columns(wait_table):
    df = wait_table.copy()
    df.loc[5, "barista_name"] = np.nan

    out = clean(df, categorical=["gender"])

    assert len(out) == len(df) - 1
    assert "barista_name" not in out.columns


def test_clean_end_to_end(wait_table):
    out = clean(wait_table, categorical=["gender", "race", "weekday", "order_type"])

    assert not out.isna().any().any()
    assert out.index.equals(pd.RangeIndex(len(out)))
    for col in ["gender", "race", "weekday", "order_type"]:
        assert isinstance(out[col].dtype, pd.CategoricalDtype)
