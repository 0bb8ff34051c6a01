"""
assumptions.py

Proportional-hazards check with scaled Schoenfeld residuals (R: cox.zph).

Null hypothesis: the covariate's hazard ratio does not change over time.
  - p >  alpha : assumption not rejected
  - p <= alpha : assumption violated, the hazard ratio may be time-varying

Per-covariate statistics come from lifelines.statistics.proportional_hazard_test.
The GLOBAL row combines all covariates from the same residuals and transformed
event times:

    u = sum_i (g(t_i) - mean g) * r_i          (r_i scaled Schoenfeld residuals)
    T = u' V^-1 u / (d * sum_i (g(t_i) - mean g)^2)   ~ chi2(p)

with V the model variance matrix and d the number of events.
"""

from __future__ import annotations

import logging

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
from scipy import stats
from lifelines import CoxPHFitter, KaplanMeierFitter
from lifelines.statistics import proportional_hazard_test

from .exceptions import AssumptionCheckError

logger = logging.getLogger(__name__)

GLOBAL_ROW = "GLOBAL"


def _km_transform(durations, events, weights):
    kmf = KaplanMeierFitter().fit(durations, event_observed=events, weights=weights)
    return 1 - kmf.survival_function_at_times(durations).to_numpy()


TIME_TRANSFORMS = {
    "km": _km_transform,
    "rank": lambda durations, events, weights: durations.rank().to_numpy(),
    "identity": lambda durations, events, weights: durations.to_numpy(),
    "log": lambda durations, events, weights: np.log(durations.to_numpy()),
}


def transformed_event_times(cph: CoxPHFitter, time_transform: str = "km") -> np.ndarray:
    """g(t) at each event time, in the order lifelines reports Schoenfeld residuals."""
    if time_transform not in TIME_TRANSFORMS:
        raise AssumptionCheckError(
            f"unknown time transform '{time_transform}', expected one of {sorted(TIME_TRANSFORMS)}"
        )
    events = cph.event_observed.astype(bool).to_numpy()
    times = TIME_TRANSFORMS[time_transform](cph.durations, cph.event_observed, cph.weights)
    return np.asarray(times, dtype=float)[events]


def global_ph_statistic(scaled_resids: pd.DataFrame, times: np.ndarray, variance_matrix: pd.DataFrame) -> float:
    demeaned = times - times.mean()
    u = demeaned @ scaled_resids.to_numpy()
    V = variance_matrix.loc[scaled_resids.columns, scaled_resids.columns].to_numpy()
    n_deaths = len(times)
    return float(u @ np.linalg.solve(V, u) / (n_deaths * (demeaned ** 2).sum()))


def check_proportional_hazards(
    cph: CoxPHFitter,
    cox_df: pd.DataFrame,
    time_transform: str = "km",
    alpha: float = 0.05,
) -> pd.DataFrame:
    """
    Returns one row per covariate plus GLOBAL:
      test_statistic, df, p, assumption
    """
    try:
        scaled = cph.compute_residuals(cox_df, kind="scaled_schoenfeld")
        times = transformed_event_times(cph, time_transform)
        res = proportional_hazard_test(cph, cox_df, time_transform=time_transform, precomputed_residuals=scaled)
        global_stat = global_ph_statistic(scaled, times, cph.variance_matrix_)
    except (ValueError, KeyError, np.linalg.LinAlgError) as e:
        raise AssumptionCheckError(f"Schoenfeld residual test failed: {e}") from e

    s = res.summary.reindex(cph.params_.index)
    out = pd.DataFrame(
        {
            "test_statistic": s["test_statistic"].astype(float).to_numpy(),
            "df": 1,
            "p": s["p"].astype(float).to_numpy(),
        },
        index=pd.Index([str(i) for i in s.index], name="covariate"),
    )

    n_params = len(cph.params_)
    out.loc[GLOBAL_ROW] = [global_stat, n_params, float(stats.chi2.sf(global_stat, n_params))]
    out["df"] = out["df"].astype(int)
    out["assumption"] = [interpret_ph_p_value(p, alpha) for p in out["p"]]

    n_violated = int((out["p"] <= alpha).sum())
    if n_violated:
        logger.warning("Proportional hazards rejected for %d of %d rows at alpha=%s", n_violated, len(out), alpha)
    return out


def interpret_ph_p_value(p: float, alpha: float = 0.05) -> str:
    if p > alpha:
        return "not rejected"
    return "violated (hazard ratio may be time-varying)"


def schoenfeld_plot(cph: CoxPHFitter, cox_df: pd.DataFrame, time_transform: str = "km", figsize=None):
    """beta(t) = coef + scaled Schoenfeld residual vs g(t), one panel per covariate."""
    scaled = cph.compute_residuals(cox_df, kind="scaled_schoenfeld")
    times = transformed_event_times(cph, time_transform)

    n = scaled.shape[1]
    if figsize is None:
        figsize = (5 * n, 4)
    fig, axes = plt.subplots(1, n, figsize=figsize, squeeze=False)

    for ax, cov in zip(axes[0], scaled.columns):
        beta = float(cph.params_[cov])
        ax.scatter(times, scaled[cov].to_numpy() + beta, s=12)
        ax.axhline(0, color="red", linewidth=1)
        ax.axhline(beta, color="black", linestyle="--", linewidth=1)
        ax.set_title(str(cov))
        ax.set_xlabel(f"Time ({time_transform})")
        ax.set_ylabel(f"Beta(t) for {cov}")
        ax.grid(True, linestyle="--", linewidth=0.5)

    plt.tight_layout()
    return axes[0][0]
