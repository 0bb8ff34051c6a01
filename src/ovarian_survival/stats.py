from __future__ import annotations

import pandas as pd
from lifelines.statistics import multivariate_logrank_test

from .config import DURATION_COL, EVENT_COL
from .exceptions import EstimationError


def logrank(
    df: pd.DataFrame,
    group_col: str,
    alpha: float = 0.05,
    duration_col=DURATION_COL,
    event_col=EVENT_COL,
) -> dict:
    """
    Log-rank test across the strata of group_col (survdiff equivalent).
    Chi-square with strata - 1 degrees of freedom, plus N and observed events per stratum.
    """
    groups = df[group_col]
    n_missing = int(groups.isna().sum())
    if n_missing:
        raise EstimationError(f"{n_missing} rows have no {group_col} stratum")

    counts = groups.value_counts(sort=False)
    counts = counts[counts > 0]
    if len(counts) < 2:
        raise EstimationError(f"log-rank test on {group_col} needs at least 2 non-empty strata, got {len(counts)}")

    res = multivariate_logrank_test(
        df[duration_col],
        groups.astype(str),
        df[event_col],
    )
    pval = float(res.p_value)

    per_group = (
        df.groupby(groups.astype(str), sort=False)[event_col]
        .agg(n="size", observed="sum")
        .reset_index()
        .rename(columns={group_col: "stratum"})
    )

    return {
        "group_col": group_col,
        "test_statistic": float(res.test_statistic),
        "degrees_of_freedom": int(len(counts) - 1),
        "p_value": pval,
        "significant": pval < alpha,
        "strata": per_group,
    }


def logrank_table(results: list[dict]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "comparison": r["group_col"],
                "chi2": r["test_statistic"],
                "df": r["degrees_of_freedom"],
                "p_value": r["p_value"],
            }
            for r in results
        ]
    )
