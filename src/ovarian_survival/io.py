from __future__ import annotations

import logging
from importlib import resources
from pathlib import Path

import pandas as pd

from .config import DURATION_COL, EVENT_CODE_COL, RAW_COLUMNS, SOURCE_COLUMNS
from .exceptions import DataLoadError, ExportError

logger = logging.getLogger(__name__)

DATASET_RESOURCE = "ovarian.csv"


def load_ovarian(path: str | Path | None = None) -> pd.DataFrame:
    """
    Load the ovarian-cancer subject table.

    Reads the CSV bundled with the package unless an explicit path is given.
    Source columns (futime, fustat, age, resid.ds, rx, ecog.ps) are renamed to:
      - time, event, age, residual_code, treatment_code, performance_score
    and returned in RAW_COLUMNS order.
    """
    try:
        if path is None:
            source = resources.files("ovarian_survival").joinpath("data").joinpath(DATASET_RESOURCE)
            with source.open("r", encoding="utf-8") as fh:
                raw = pd.read_csv(fh)
            path = DATASET_RESOURCE
        else:
            raw = pd.read_csv(path)
    except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise DataLoadError(f"dataset unavailable at {path}: {e}") from e

    missing = [c for c in SOURCE_COLUMNS if c not in raw.columns]
    if missing:
        raise DataLoadError(f"dataset {path} is missing columns {missing}")

    df = raw.rename(columns=SOURCE_COLUMNS)[RAW_COLUMNS]
    validate_subjects(df)

    logger.info("Loaded %d subjects from %s", len(df), path)
    return df


def validate_subjects(
    df: pd.DataFrame,
    duration_col: str = DURATION_COL,
    event_col: str = EVENT_CODE_COL,
) -> None:
    """
    Rules:
      - duration not null and >= 0
      - event not null and binary (at most two distinct codes)
    """
    t = pd.to_numeric(df[duration_col], errors="coerce")
    if t.isna().any():
        raise DataLoadError(f"{int(t.isna().sum())} rows have a missing or non-numeric {duration_col}")
    if (t < 0).any():
        raise DataLoadError(f"{int((t < 0).sum())} rows have a negative {duration_col}")

    e = df[event_col]
    if e.isna().any():
        raise DataLoadError(f"{int(e.isna().sum())} rows have a missing {event_col}")
    codes = sorted(e.unique().tolist())
    if len(codes) > 2:
        raise DataLoadError(f"{event_col} must be binary, found codes {codes}")


def export_dataset(df: pd.DataFrame, path: str | Path, columns: list[str] | None = None) -> Path:
    """
    Write the original columns as CSV (header row, no index) in the given field order.
    The parent directory must already exist.
    """
    if columns is None:
        columns = RAW_COLUMNS

    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise ExportError(f"cannot export, table is missing columns {missing}")

    path = Path(path)
    try:
        df[list(columns)].to_csv(path, index=False)
    except OSError as e:
        raise ExportError(f"cannot write {path}: {e}") from e

    logger.info("Exported %d rows to %s", len(df), path)
    return path


def prepare_output_dir(path: str | Path) -> Path:
    path = Path(path)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ExportError(f"cannot create output directory {path}: {e}") from e
    return path


def write_table(df: pd.DataFrame, path: str | Path, index: bool = False) -> Path:
    """Write a result table as CSV; any OS-level failure becomes an ExportError."""
    path = Path(path)
    try:
        df.to_csv(path, index=index)
    except OSError as e:
        raise ExportError(f"cannot write {path}: {e}") from e
    return path
