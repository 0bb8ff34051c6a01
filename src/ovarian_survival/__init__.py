from .io import (
    load_ovarian,
    validate_subjects,
    export_dataset,
    prepare_output_dir,
    write_table,
)
from .preprocess import (
    survival_pair,
    map_codes,
    labels_to_codes,
    add_label_columns,
)
from .km import (
    fit_km,
    fit_km_by_group,
    km_life_table,
    km_life_tables,
    median_survival_times,
    km_plot,
    save_figure,
)
from .stats import (
    logrank,
    logrank_table,
)
from .cox_hazard_lib import (
    build_cox_design,
    reference_levels,
    fit_cox_model,
    hazard_ratio,
    hr_table,
    hr_table_from_summary,
    fit_stats,
    run_cox,
)
from .assumptions import (
    check_proportional_hazards,
    interpret_ph_p_value,
    schoenfeld_plot,
)
from .report import (
    km_summary_text,
    logrank_summary_text,
    cox_summary_text,
    ph_summary_text,
    analysis_report_text,
)
from .survival_main import run_analysis
