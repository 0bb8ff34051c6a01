import numpy as np

from ovarian_survival import (
    check_proportional_hazards,
    cox_summary_text,
    km_summary_text,
    logrank,
    logrank_summary_text,
    ph_summary_text,
    run_cox,
)


def test_km_summary_not_reached():
    text = km_summary_text("Overall", {"all": np.inf, "control": 638.0})
    assert "all: median survival = not reached" in text
    assert "control: median survival = 638 days" in text


def test_logrank_summary(labelled):
    text = logrank_summary_text(logrank(labelled, "treatment_arm"))
    assert text.startswith("Log-rank test – treatment_arm:")
    assert "on 1 df" in text
    assert "control: N=13" in text


def test_cox_and_ph_summary(labelled):
    cox = run_cox(labelled)
    text = cox_summary_text(cox["hr_table"], cox["fit_stats"])
    assert "events=12" in text
    assert "age:" in text
    assert "Likelihood ratio test" in text

    ph = check_proportional_hazards(cox["model"], cox["cox_df"])
    ph_text = ph_summary_text(ph)
    assert "- global:" in ph_text
    assert ph_text.count("->") == 4
