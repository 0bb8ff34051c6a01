from __future__ import annotations

import numpy as np
import pandas as pd

from .config import (
    DURATION_COL,
    EVENT_CODE,
    EVENT_CODE_COL,
    EVENT_COL,
    RESIDUAL_CODE_COL,
    RESIDUAL_COL,
    RESIDUAL_LABELS,
    TREATMENT_CODE_COL,
    TREATMENT_COL,
    TREATMENT_LABELS,
)
from .exceptions import LabelingError


def survival_pair(
    df: pd.DataFrame,
    event_code: int = EVENT_CODE,
    duration_col: str = DURATION_COL,
    event_col: str = EVENT_CODE_COL,
) -> pd.DataFrame:
    """
    Time/event pair for survival estimation:
      time           = duration
      event_observed = 1 if event == event_code else 0 (censored)
    """
    return pd.DataFrame(
        {
            DURATION_COL: df[duration_col].astype(float),
            EVENT_COL: np.where(df[event_col] == event_code, 1, 0).astype(int),
        },
        index=df.index,
    )


def map_codes(series: pd.Series, mapping: dict, column: str | None = None) -> pd.Categorical:
    """
    Integer codes -> ordered categorical with categories in mapping order.
    Raises LabelingError for any code outside the mapping.
    """
    name = column or series.name
    unknown = sorted(set(series.dropna().unique()) - set(mapping), key=str)
    if unknown or series.isna().any():
        bad = unknown + (["<missing>"] if series.isna().any() else [])
        raise LabelingError(f"{name}: codes {bad} are outside the declared domain {sorted(mapping)}")

    labels = list(mapping.values())
    return pd.Categorical(series.map(mapping), categories=labels, ordered=True)


def labels_to_codes(series, mapping: dict) -> pd.Series:
    inverse = {label: code for code, label in mapping.items()}
    values = pd.Series(series, copy=False).astype(object)
    unknown = sorted(set(values.dropna()) - set(inverse))
    if values.isna().any():
        unknown.append("<missing>")
    if unknown:
        raise LabelingError(f"labels {unknown} are not in {list(inverse)}")
    return values.map(inverse).astype(int)


def add_label_columns(df: pd.DataFrame, event_code: int = EVENT_CODE) -> pd.DataFrame:
    """
    Returns a copy of the raw table with derived columns added:
      - event_observed   : 0/1 from the event sentinel
      - treatment_arm    : control / treatment
      - residual_disease : no_residual / residual
    Source code columns are left as loaded.
    """
    out = df.copy()
    out[EVENT_COL] = survival_pair(df, event_code=event_code)[EVENT_COL]
    out[TREATMENT_COL] = map_codes(df[TREATMENT_CODE_COL], TREATMENT_LABELS, TREATMENT_CODE_COL)
    out[RESIDUAL_COL] = map_codes(df[RESIDUAL_CODE_COL], RESIDUAL_LABELS, RESIDUAL_CODE_COL)
    return out
