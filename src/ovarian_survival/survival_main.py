# survival_main.py
from __future__ import annotations

import logging
from logging import DEBUG, ERROR, INFO
from pathlib import Path

import matplotlib
import pandas as pd
from logdecorator import log_on_end, log_on_error, log_on_start

from .assumptions import check_proportional_hazards, schoenfeld_plot
from .config import RESIDUAL_COL, TREATMENT_COL, AnalysisConfig
from .cox_hazard_lib import run_cox
from .exceptions import SurvivalAnalysisError
from .io import export_dataset, load_ovarian, prepare_output_dir, write_table
from .km import fit_km, fit_km_by_group, km_life_tables, km_plot, median_survival_times, save_figure
from .preprocess import add_label_columns
from .report import analysis_report_text
from .stats import logrank, logrank_table

logger = logging.getLogger(__name__)


def _stage(name: str):
    def wrap(func):
        func = log_on_end(DEBUG, f"stage '{name}' done", logger=logger)(func)
        func = log_on_error(
            ERROR,
            f"stage '{name}' failed: {{e!s}}",
            logger=logger,
            on_exceptions=Exception,
            reraise=True,
        )(func)
        func = log_on_start(INFO, f"stage '{name}'...", logger=logger)(func)
        return func

    return wrap


@_stage("load")
def load_stage(data_path=None):
    return load_ovarian(data_path)


@_stage("preprocess")
def preprocess_stage(raw, cfg: AnalysisConfig):
    return add_label_columns(raw, event_code=cfg.event_code)


@_stage("km")
def km_stage(df, cfg: AnalysisConfig, out_dir: Path) -> dict:
    """
    Overall, by-treatment and by-residual KM curves, log-rank tests, life tables and plots.
    """
    kms = {
        "overall": {"all": fit_km(df, label="all", alpha=cfg.alpha)},
        "treatment": fit_km_by_group(df, TREATMENT_COL, alpha=cfg.alpha),
        "residual": fit_km_by_group(df, RESIDUAL_COL, alpha=cfg.alpha),
    }

    lr_treatment = logrank(df, TREATMENT_COL, alpha=cfg.alpha)
    lr_residual = logrank(df, RESIDUAL_COL, alpha=cfg.alpha)

    plots = [
        ("overall", cfg.overall_plot, None, "km_overall.png"),
        ("treatment", cfg.treatment_plot, lr_treatment["p_value"], "km_by_treatment.png"),
        ("residual", cfg.residual_plot, lr_residual["p_value"], "km_by_residual.png"),
    ]
    for key, options, p, filename in plots:
        ax = km_plot(kms[key], options, logrank_p=p)
        save_figure(ax, out_dir / filename, dpi=cfg.dpi)

    tables = []
    for key, group in kms.items():
        t = km_life_tables(group)
        t.insert(0, "analysis", key)
        tables.append(t)

    life_tables = pd.concat(tables, ignore_index=True)
    write_table(life_tables, out_dir / "km_life_tables.csv")

    logrank_results = [lr_treatment, lr_residual]
    write_table(logrank_table(logrank_results), out_dir / "logrank_tests.csv")

    return {
        "kms": kms,
        "life_tables": life_tables,
        "medians": {key: median_survival_times(group) for key, group in kms.items()},
        "logrank": logrank_results,
    }


@_stage("cox")
def cox_stage(df, cfg: AnalysisConfig, out_dir: Path) -> dict:
    cox = run_cox(df, alpha=cfg.alpha)
    write_table(cox["hr_table"], out_dir / "cox_summary.csv")
    return cox


@_stage("assumption-check")
def assumption_stage(cox: dict, cfg: AnalysisConfig, out_dir: Path):
    ph = check_proportional_hazards(cox["model"], cox["cox_df"], time_transform=cfg.time_transform, alpha=cfg.alpha)
    write_table(ph, out_dir / "ph_test.csv", index=True)

    ax = schoenfeld_plot(cox["model"], cox["cox_df"], time_transform=cfg.time_transform)
    save_figure(ax, out_dir / "schoenfeld_residuals.png", dpi=cfg.dpi)
    return ph


@_stage("export")
def export_stage(raw, out_dir: Path):
    return export_dataset(raw, out_dir / "ovarian.csv")


def run_analysis(cfg: AnalysisConfig | None = None, data_path=None) -> dict:
    """
    load -> preprocess -> KM + log-rank -> Cox -> PH check -> export
    Any stage failure aborts the run.
    """
    if cfg is None:
        cfg = AnalysisConfig()

    out_dir = prepare_output_dir(cfg.output_dir)

    raw = load_stage(data_path)
    df = preprocess_stage(raw, cfg)
    km = km_stage(df, cfg, out_dir)
    cox = cox_stage(df, cfg, out_dir)
    ph = assumption_stage(cox, cfg, out_dir)
    export_path = export_stage(raw, out_dir)

    results = {
        "data": df,
        "kms": km["kms"],
        "life_tables": km["life_tables"],
        "medians": km["medians"],
        "logrank": km["logrank"],
        "cox": cox,
        "ph_test": ph,
        "export_path": export_path,
    }
    results["report"] = analysis_report_text(results, alpha=cfg.alpha)
    return results


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    matplotlib.use("Agg")

    try:
        results = run_analysis()
    except SurvivalAnalysisError as e:
        logger.error("Analysis aborted at stage '%s': %s", e.stage, e.reason)
        raise SystemExit(1) from e

    print(results["report"])
    print("Outputs saved to:", AnalysisConfig().output_dir)


if __name__ == "__main__":
    main()
