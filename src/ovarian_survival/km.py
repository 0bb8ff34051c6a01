from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
from lifelines import KaplanMeierFitter
from lifelines.plotting import add_at_risk_counts

from .config import DURATION_COL, EVENT_COL, KMPlotOptions
from .exceptions import EstimationError, ExportError

logger = logging.getLogger(__name__)


def fit_km(df, label: str = "overall", duration_col=DURATION_COL, event_col=EVENT_COL, alpha: float = 0.05):
    if len(df) == 0:
        raise EstimationError(f"no subjects to estimate survival for '{label}'")
    km = KaplanMeierFitter(alpha=alpha)
    km.fit(df[duration_col], event_observed=df[event_col], label=label)
    return km


def fit_km_by_group(
    df: pd.DataFrame,
    group_col: str,
    duration_col=DURATION_COL,
    event_col=EVENT_COL,
    alpha: float = 0.05,
) -> dict:
    """
    One KM fit per stratum of group_col, keyed by level.
    Categorical columns keep their declared level order; empty levels are skipped.
    """
    col = df[group_col]
    if isinstance(col.dtype, pd.CategoricalDtype):
        levels = list(col.cat.categories)
    else:
        levels = sorted(col.dropna().unique(), key=str)

    kms = {}
    for g in levels:
        sub = df[col == g]
        if len(sub) == 0:
            logger.warning("No rows for %s=%s, stratum skipped", group_col, g)
            continue
        kms[g] = fit_km(sub, label=str(g), duration_col=duration_col, event_col=event_col, alpha=alpha)

    if not kms:
        raise EstimationError(f"{group_col} has no non-empty strata")
    return kms


def km_life_table(kmf: KaplanMeierFitter, event_times_only: bool = True) -> pd.DataFrame:
    """
    Life table in the layout of R's summary(survfit):
      time, at_risk, events, censored, survival, ci_lower, ci_upper

    ci_lower/ci_upper are lifelines' exponential Greenwood (log(-log S)) bounds,
    i.e. R's conf.type = "log-log", not survfit's default conf.type = "log".
    """
    et = kmf.event_table
    ci = kmf.confidence_interval_survival_function_

    table = pd.DataFrame(
        {
            "time": et.index.to_numpy(dtype=float),
            "at_risk": et["at_risk"].to_numpy(dtype=int),
            "events": et["observed"].to_numpy(dtype=int),
            "censored": et["censored"].to_numpy(dtype=int),
            "survival": kmf.survival_function_.loc[et.index].iloc[:, 0].to_numpy(dtype=float),
            "ci_lower": ci.loc[et.index].iloc[:, 0].to_numpy(dtype=float),
            "ci_upper": ci.loc[et.index].iloc[:, 1].to_numpy(dtype=float),
        }
    )

    if event_times_only:
        table = table[table["events"] > 0]
    return table.reset_index(drop=True)


def km_life_tables(kms: dict, event_times_only: bool = True) -> pd.DataFrame:
    frames = []
    for stratum, kmf in kms.items():
        t = km_life_table(kmf, event_times_only=event_times_only)
        t.insert(0, "stratum", str(stratum))
        frames.append(t)
    return pd.concat(frames, ignore_index=True)


def median_survival_times(kms: dict) -> dict:
    """First time with S(t) <= 0.5 per stratum; inf when the curve never gets there."""
    return {str(k): float(kmf.median_survival_time_) for k, kmf in kms.items()}


def format_p_value(p: float) -> str:
    if p < 1e-4:
        return "p < 0.0001"
    return f"p = {p:.2g}"


def km_plot(kms: dict, options: KMPlotOptions | None = None, logrank_p: float | None = None):
    """
    Draw one KM panel.
    Options: risk table, confidence band, median line ("h"/"v"/"hv"),
    title, axis labels, p-value annotation, legend title/labels.
    """
    if options is None:
        options = KMPlotOptions()

    fitters = list(kms.values())
    labels = list(options.legend_labels) if options.legend_labels else [str(k) for k in kms]
    if len(labels) != len(fitters):
        raise EstimationError(f"{len(labels)} legend labels given for {len(fitters)} strata")

    fig, ax = plt.subplots(figsize=options.figsize)
    for kmf in fitters:
        kmf.plot_survival_function(
            ax=ax,
            ci_show=options.conf_int,
            show_censors=True,
            censor_styles={"marker": "|", "ms": 8, "mew": 1.5},
        )
    handles, _ = ax.get_legend_handles_labels()

    if options.median_line:
        _draw_median_lines(ax, fitters, options.median_line)

    if options.pval and logrank_p is not None:
        ax.text(0.05, 0.08, format_p_value(logrank_p), transform=ax.transAxes)

    ax.set_title(options.title)
    ax.set_xlabel(options.xlabel)
    ax.set_ylabel(options.ylabel)
    ax.set_ylim(0, 1.05)
    ax.grid(True, linestyle="--", linewidth=0.5)
    ax.legend(handles[: len(labels)], labels, title=options.legend_title)

    if options.risk_table:
        add_at_risk_counts(*fitters, ax=ax, labels=labels)

    plt.tight_layout()
    return ax


def _draw_median_lines(ax, fitters, how: str):
    medians = [m for m in (kmf.median_survival_time_ for kmf in fitters) if np.isfinite(m)]
    if not medians:
        logger.info("Median survival not reached, no median line drawn")
        return
    if "h" in how:
        ax.hlines(0.5, 0, max(medians), linestyles="--", colors="black", linewidth=1)
    if "v" in how:
        ax.vlines(medians, 0, 0.5, linestyles="--", colors="black", linewidth=1)


def save_figure(ax, save_path: str | Path, dpi: int = 200) -> Path:
    fig = ax.get_figure()
    try:
        fig.savefig(save_path, dpi=dpi, bbox_inches="tight")
    except OSError as e:
        raise ExportError(f"cannot write {save_path}: {e}") from e
    finally:
        plt.close(fig)
    logger.info("Saved: %s", save_path)
    return Path(save_path)
