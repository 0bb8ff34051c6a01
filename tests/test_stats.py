import pandas as pd
import pytest

from ovarian_survival import logrank, logrank_table
from ovarian_survival.exceptions import EstimationError


def test_identical_twin_strata(labelled):
    a = labelled[["time", "event_observed"]].assign(group="A")
    b = labelled[["time", "event_observed"]].assign(group="B")
    res = logrank(pd.concat([a, b], ignore_index=True), "group")

    assert res["p_value"] == pytest.approx(1.0, abs=1e-6)
    assert res["test_statistic"] == pytest.approx(0.0, abs=1e-6)
    assert res["degrees_of_freedom"] == 1
    assert not res["significant"]


def test_logrank_treatment(labelled):
    res = logrank(labelled, "treatment_arm")
    assert res["degrees_of_freedom"] == 1
    assert 0.0 < res["p_value"] < 1.0
    strata = res["strata"].set_index("stratum")
    assert strata.loc["control", "n"] == 13
    assert strata.loc["treatment", "n"] == 13
    assert strata["observed"].sum() == 12


def test_logrank_residual_more_separated(labelled):
    rx = logrank(labelled, "treatment_arm")
    resid = logrank(labelled, "residual_disease")
    assert resid["test_statistic"] > rx["test_statistic"]


def test_logrank_degrees_of_freedom(toy):
    df = pd.concat([toy.assign(g=g) for g in "xyz"], ignore_index=True)
    assert logrank(df, "g")["degrees_of_freedom"] == 2


def test_logrank_needs_two_strata(labelled):
    df = labelled[labelled["treatment_arm"] == "control"]
    with pytest.raises(EstimationError) as exc:
        logrank(df, "treatment_arm")
    assert exc.value.stage == "km"


def test_logrank_table(labelled):
    table = logrank_table([logrank(labelled, "treatment_arm"), logrank(labelled, "residual_disease")])
    assert table["comparison"].tolist() == ["treatment_arm", "residual_disease"]
    assert table["df"].tolist() == [1, 1]


def test_logrank_rejects_missing_stratum(labelled):
    df = labelled[["time", "event_observed"]].assign(group=["A", "B"] * 12 + [None, None])
    with pytest.raises(EstimationError, match="2 rows have no group stratum"):
        logrank(df, "group")
