import matplotlib

matplotlib.use("Agg")

import pandas as pd
import pytest

from ovarian_survival import add_label_columns, load_ovarian


@pytest.fixture(scope="session")
def raw():
    return load_ovarian()


@pytest.fixture(scope="session")
def labelled(raw):
    return add_label_columns(raw)


@pytest.fixture
def toy():
    return pd.DataFrame(
        {
            "time": [5.0, 10.0, 10.0, 15.0],
            "event_observed": [1, 1, 0, 1],
        }
    )


def make_raw(rows):
    """rows: (time, event, treatment_code, residual_code, age, performance_score)"""
    return pd.DataFrame(
        rows,
        columns=["time", "event", "treatment_code", "residual_code", "age", "performance_score"],
    )
