from __future__ import annotations

import numpy as np
import pandas as pd

from .assumptions import GLOBAL_ROW, interpret_ph_p_value


def _fmt_time(t: float) -> str:
    return "not reached" if not np.isfinite(t) else f"{t:.0f} days"


def km_summary_text(title: str, medians: dict) -> str:
    lines = [f"{title}:"]
    for stratum, m in medians.items():
        lines.append(f"- {stratum}: median survival = {_fmt_time(m)}")
    return "\n".join(lines)


def logrank_summary_text(lr: dict, alpha: float = 0.05) -> str:
    sig = lr["p_value"] < alpha
    lines = []
    lines.append(f"Log-rank test – {lr['group_col']}:")
    lines.append(
        f"- Chisq = {lr['test_statistic']:.2f} on {lr['degrees_of_freedom']} df, "
        f"p-value = {lr['p_value']:.3g} (significant={sig})"
    )
    for _, row in lr["strata"].iterrows():
        lines.append(f"  {row['stratum']}: N={int(row['n'])}, observed events={int(row['observed'])}")
    return "\n".join(lines)


def cox_summary_text(hr: pd.DataFrame, stats: dict, alpha: float = 0.05) -> str:
    """
    Cox model paragraph:
    HR > 1 => higher risk of death than the reference level
    HR < 1 => lower risk
    """
    lines = []
    lines.append(f"Cox proportional hazards model (n={stats['n']}, events={stats['n_events']}):")
    for _, row in hr.iterrows():
        direction = "higher" if row["hazard_ratio"] > 1 else "lower"
        lines.append(
            f"- {row['covariate']}: coef={row['coef']:.4f} (se {row['se(coef)']:.4f}), "
            f"HR={row['hazard_ratio']:.3f} 95%CI=({row['hr_lower_95']:.3f}, {row['hr_upper_95']:.3f}), "
            f"z={row['z']:.2f}, p={row['p']:.3g} -> {direction} risk"
            + ("" if row["p"] < alpha else " (not significant)")
        )
    lines.append(
        f"Likelihood ratio test = {stats['lr_test_statistic']:.2f} on {stats['lr_degrees_of_freedom']} df, "
        f"p={stats['lr_p_value']:.3g}"
    )
    lines.append(f"Concordance = {stats['concordance_index']:.3f}")
    return "\n".join(lines)


def ph_summary_text(ph: pd.DataFrame, alpha: float = 0.05) -> str:
    lines = ["Proportional hazards check (scaled Schoenfeld residuals):"]
    for name, row in ph.iterrows():
        label = "global" if name == GLOBAL_ROW else name
        lines.append(
            f"- {label}: chisq={row['test_statistic']:.3f} df={int(row['df'])} p={row['p']:.3g} "
            f"-> {interpret_ph_p_value(row['p'], alpha)}"
        )
    return "\n".join(lines)


def analysis_report_text(results: dict, alpha: float = 0.05) -> str:
    parts = [
        km_summary_text("Overall survival (Kaplan–Meier)", results["medians"]["overall"]),
        km_summary_text("Survival by treatment group", results["medians"]["treatment"]),
        km_summary_text("Survival by residual disease", results["medians"]["residual"]),
    ]
    parts += [logrank_summary_text(lr, alpha) for lr in results["logrank"]]
    parts.append(cox_summary_text(results["cox"]["hr_table"], results["cox"]["fit_stats"], alpha))
    parts.append(ph_summary_text(results["ph_test"], alpha))
    return "\n\n".join(parts)
