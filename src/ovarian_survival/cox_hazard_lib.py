"""
cox_hazard_lib.py

Cox proportional hazards model for the ovarian-cancer data.

Model (R: coxph(Surv(futime, fustat == 1) ~ rx + resid.ds + age)):
  - treatment_arm    : indicator for "treatment", reference "control"
  - residual_disease : indicator for "residual", reference "no_residual"
  - age              : continuous

Ties are handled with Efron's method (lifelines default).
Non-convergence is an error: lifelines' ConvergenceWarning is escalated so a
partially fitted model is never returned.

Dependencies:
  - lifelines
  - pandas, numpy
"""

from __future__ import annotations

import logging
import warnings

import numpy as np
import pandas as pd

from lifelines import CoxPHFitter
from lifelines.exceptions import ConvergenceError, ConvergenceWarning

from .config import AGE_COL, DURATION_COL, EVENT_COL, RESIDUAL_COL, TREATMENT_COL
from .exceptions import CoxFitError

logger = logging.getLogger(__name__)


# ----------------------------
# Design matrix
# ----------------------------

def build_cox_design(
    df: pd.DataFrame,
    duration_col: str = DURATION_COL,
    event_col: str = EVENT_COL,
    numeric_cols: list | None = None,
    categorical_cols: list | None = None,
) -> pd.DataFrame:
    """
    Labelled table -> Cox design matrix with:
    - duration, event (0/1)
    - one indicator per non-reference level of each categorical column
      (the first declared category is the reference)
    - numeric predictors as float

    Rows with a missing predictor are rejected rather than dropped.
    """
    if numeric_cols is None:
        numeric_cols = [AGE_COL]
    if categorical_cols is None:
        categorical_cols = [TREATMENT_COL, RESIDUAL_COL]

    keep_cols = [duration_col, event_col] + list(categorical_cols) + list(numeric_cols)
    missing_cols = [c for c in keep_cols if c not in df.columns]
    if missing_cols:
        raise CoxFitError(f"design is missing columns {missing_cols}")

    pdf = df[keep_cols].copy()

    pred_cols = list(categorical_cols) + list(numeric_cols)
    n_missing = int(pdf[pred_cols].isna().any(axis=1).sum())
    if n_missing:
        raise CoxFitError(f"{n_missing} rows have missing predictors")

    pdf[duration_col] = pdf[duration_col].astype(float)
    pdf[event_col] = pdf[event_col].astype(int)
    for c in numeric_cols:
        pdf[c] = pd.to_numeric(pdf[c]).astype(float)

    for c in categorical_cols:
        if not isinstance(pdf[c].dtype, pd.CategoricalDtype):
            pdf[c] = pd.Categorical(pdf[c])

    pdf = pd.get_dummies(pdf, columns=list(categorical_cols), drop_first=True, dtype=float)

    # covariate order: indicators first, then numerics (matches the R formula)
    covariates = [c for c in pdf.columns if c not in (duration_col, event_col) and c not in numeric_cols]
    return pdf[[duration_col, event_col] + covariates + list(numeric_cols)]


def reference_levels(df: pd.DataFrame, categorical_cols: list[str] | None = None) -> dict:
    if categorical_cols is None:
        categorical_cols = [TREATMENT_COL, RESIDUAL_COL]
    ref_map = {}
    for c in categorical_cols:
        s = df[c]
        if isinstance(s.dtype, pd.CategoricalDtype):
            ref_map[c] = s.cat.categories[0]
        else:
            ref_map[c] = sorted(s.dropna().unique(), key=str)[0]
    return ref_map


# ----------------------------
# Cox model + outputs
# ----------------------------

def fit_cox_model(
    cox_df: pd.DataFrame,
    duration_col: str = DURATION_COL,
    event_col: str = EVENT_COL,
    penalizer: float = 0.0,
    alpha: float = 0.05,
) -> CoxPHFitter:
    """
    Fits CoxPH by maximising the Efron partial likelihood.
    Raises CoxFitError instead of returning a non-converged model.
    """
    n_events = int(cox_df[event_col].sum())
    if n_events == 0:
        raise CoxFitError("no events observed, partial likelihood is undefined")

    cph = CoxPHFitter(penalizer=penalizer, alpha=alpha)
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("error", ConvergenceWarning)
            cph.fit(cox_df, duration_col=duration_col, event_col=event_col)
    except (ConvergenceError, ConvergenceWarning) as e:
        raise CoxFitError(f"Cox model did not converge: {e}") from e
    except np.linalg.LinAlgError as e:
        raise CoxFitError(f"information matrix is not positive definite: {e}") from e

    logger.info("Cox model fitted on %d subjects, %d events", len(cox_df), n_events)
    return cph


def hazard_ratio(coef):
    return np.exp(coef)


def hr_table_from_summary(summary: pd.DataFrame) -> pd.DataFrame:
    """
    Per-covariate table from a lifelines summary frame:
      coef, se(coef), hazard_ratio, 95% HR bounds, z (Wald), p
    HR > 1 => higher instantaneous risk than the reference level
    HR < 1 => lower risk
    """
    s = summary.copy()
    lower_col = [c for c in s.columns if c.startswith("coef lower")][0]
    upper_col = [c for c in s.columns if c.startswith("coef upper")][0]

    s["hazard_ratio"] = hazard_ratio(s["coef"])
    s["hr_lower_95"] = hazard_ratio(s[lower_col])
    s["hr_upper_95"] = hazard_ratio(s[upper_col])

    out = s[["coef", "se(coef)", "hazard_ratio", "hr_lower_95", "hr_upper_95", "z", "p"]]
    out = out.rename_axis("covariate").reset_index()
    return out


def hr_table(cph: CoxPHFitter) -> pd.DataFrame:
    return hr_table_from_summary(cph.summary)


def fit_stats(cph: CoxPHFitter) -> dict:
    lr = cph.log_likelihood_ratio_test()
    return {
        "log_likelihood": float(cph.log_likelihood_),
        "lr_test_statistic": float(lr.test_statistic),
        "lr_degrees_of_freedom": int(len(cph.params_)),
        "lr_p_value": float(lr.p_value),
        "partial_aic": float(cph.AIC_partial_),
        "concordance_index": float(cph.concordance_index_),
        "n": int(len(cph.durations)),
        "n_events": int(cph.event_observed.sum()),
    }


def run_cox(
    df: pd.DataFrame,
    numeric_cols: list | None = None,
    categorical_cols: list | None = None,
    penalizer: float = 0.0,
    alpha: float = 0.05,
) -> dict:
    """
    Full Cox step:
      labelled table -> design -> fit -> HR table + fit stats
    """
    cox_df = build_cox_design(df, numeric_cols=numeric_cols, categorical_cols=categorical_cols)
    cph = fit_cox_model(cox_df, penalizer=penalizer, alpha=alpha)

    return {
        "cox_df": cox_df,
        "model": cph,
        "hr_table": hr_table(cph),
        "fit_stats": fit_stats(cph),
        "reference_categories": reference_levels(df, categorical_cols),
    }
