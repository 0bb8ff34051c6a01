"""
config.py

Fixed settings for the ovarian-cancer survival analysis.

Dataset encoding (R survival::ovarian):
  - futime   : follow-up time in days
  - fustat   : 1 = death, 0 = censored
  - rx       : 1 = control, 2 = treatment
  - resid.ds : 1 = no residual disease, 2 = residual disease
  - ecog.ps  : ECOG performance score (higher is worse)
"""

from __future__ import annotations

from dataclasses import dataclass, field

DURATION_COL = "time"
EVENT_CODE_COL = "event"
EVENT_COL = "event_observed"
TREATMENT_CODE_COL = "treatment_code"
RESIDUAL_CODE_COL = "residual_code"
AGE_COL = "age"
PERFORMANCE_COL = "performance_score"

TREATMENT_COL = "treatment_arm"
RESIDUAL_COL = "residual_disease"

# source column -> canonical column
SOURCE_COLUMNS = {
    "futime": DURATION_COL,
    "fustat": EVENT_CODE_COL,
    "age": AGE_COL,
    "resid.ds": RESIDUAL_CODE_COL,
    "rx": TREATMENT_CODE_COL,
    "ecog.ps": PERFORMANCE_COL,
}

RAW_COLUMNS = [
    DURATION_COL,
    EVENT_CODE_COL,
    TREATMENT_CODE_COL,
    RESIDUAL_CODE_COL,
    AGE_COL,
    PERFORMANCE_COL,
]

TREATMENT_LABELS = {1: "control", 2: "treatment"}
RESIDUAL_LABELS = {1: "no_residual", 2: "residual"}

EVENT_CODE = 1
ALPHA = 0.05
TIME_TRANSFORM = "km"
OUTPUT_DIR = "output"


@dataclass(frozen=True)
class KMPlotOptions:
    """Display options for a Kaplan–Meier panel."""

    title: str = "Kaplan–Meier survival curve"
    xlabel: str = "Time (days)"
    ylabel: str = "Survival probability"
    risk_table: bool = True
    conf_int: bool = True
    median_line: str | None = None  # "h", "v", "hv" or None
    pval: bool = False
    legend_title: str | None = None
    legend_labels: tuple | None = None
    figsize: tuple = (8, 6)


@dataclass(frozen=True)
class AnalysisConfig:
    event_code: int = EVENT_CODE
    alpha: float = ALPHA
    time_transform: str = TIME_TRANSFORM
    output_dir: str = OUTPUT_DIR
    dpi: int = 200
    overall_plot: KMPlotOptions = field(
        default_factory=lambda: KMPlotOptions(
            title="Overall survival curve (ovarian cancer)",
            median_line="hv",
        )
    )
    treatment_plot: KMPlotOptions = field(
        default_factory=lambda: KMPlotOptions(
            title="Survival curves by treatment group",
            pval=True,
            legend_title="Treatment",
            legend_labels=("control", "treatment"),
        )
    )
    residual_plot: KMPlotOptions = field(
        default_factory=lambda: KMPlotOptions(
            title="Survival curves by residual disease status",
            pval=True,
            legend_title="Residual disease",
            legend_labels=("no residual", "residual"),
        )
    )
