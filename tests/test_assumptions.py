import numpy as np
import pytest

from ovarian_survival import (
    build_cox_design,
    check_proportional_hazards,
    fit_cox_model,
    interpret_ph_p_value,
    schoenfeld_plot,
    save_figure,
)
from ovarian_survival.assumptions import GLOBAL_ROW
from ovarian_survival.exceptions import AssumptionCheckError


@pytest.fixture(scope="module")
def fitted(labelled):
    design = build_cox_design(labelled)
    return fit_cox_model(design), design


@pytest.mark.parametrize("transform", ["km", "rank", "identity", "log"])
def test_ph_table_shape(fitted, transform):
    cph, design = fitted
    ph = check_proportional_hazards(cph, design, time_transform=transform)

    assert list(ph.index) == ["treatment_arm_treatment", "residual_disease_residual", "age", GLOBAL_ROW]
    assert ph.loc[GLOBAL_ROW, "df"] == 3
    assert (ph.drop(index=GLOBAL_ROW)["df"] == 1).all()
    assert ((ph["p"] >= 0) & (ph["p"] <= 1)).all()
    assert (ph["test_statistic"] >= 0).all()


def test_ph_interpretation_column(fitted):
    cph, design = fitted
    ph = check_proportional_hazards(cph, design)
    for _, row in ph.iterrows():
        assert row["assumption"] == interpret_ph_p_value(row["p"])


@pytest.mark.parametrize("transform", ["identity"])
def test_global_equals_single_covariate(labelled, transform):
    design = build_cox_design(labelled, categorical_cols=[])
    cph = fit_cox_model(design)
    ph = check_proportional_hazards(cph, design, time_transform=transform)

    assert ph.loc[GLOBAL_ROW, "test_statistic"] == pytest.approx(ph.loc["age", "test_statistic"], rel=1e-6)
    assert ph.loc[GLOBAL_ROW, "p"] == pytest.approx(ph.loc["age", "p"], rel=1e-6)


def test_interpret_p_value():
    assert interpret_ph_p_value(0.3) == "not rejected"
    assert interpret_ph_p_value(0.05).startswith("violated")
    assert interpret_ph_p_value(0.01).startswith("violated")
    assert interpret_ph_p_value(0.08, alpha=0.1).startswith("violated")


def test_unknown_transform(fitted):
    cph, design = fitted
    with pytest.raises(AssumptionCheckError) as exc:
        check_proportional_hazards(cph, design, time_transform="sqrt")
    assert exc.value.stage == "assumption-check"


def test_schoenfeld_plot(fitted, tmp_path):
    cph, design = fitted
    ax = schoenfeld_plot(cph, design)
    assert len(ax.get_figure().axes) == 3
    assert save_figure(ax, tmp_path / "zph.png").exists()


def test_ph_rows_follow_model_covariate_order(fitted):
    cph, design = fitted
    ph = check_proportional_hazards(cph, design)
    assert list(ph.index[:-1]) == list(cph.params_.index)
    assert ph.index[-1] == GLOBAL_ROW
