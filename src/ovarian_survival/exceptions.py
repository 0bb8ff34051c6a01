class SurvivalAnalysisError(Exception):
    """Base error for the analysis pipeline; ``stage`` names the failing step."""

    stage = "analysis"

    def __init__(self, message: str):
        super().__init__(f"[{self.stage}] {message}")
        self.reason = message


class DataLoadError(SurvivalAnalysisError):
    """The dataset is missing, unreadable or violates the subject invariants."""

    stage = "load"


class LabelingError(SurvivalAnalysisError, ValueError):
    """A categorical code falls outside its declared label set."""

    stage = "preprocess"


class EstimationError(SurvivalAnalysisError):
    stage = "km"


class CoxFitError(SurvivalAnalysisError):
    """The Cox partial likelihood could not be maximised."""

    stage = "cox"


class AssumptionCheckError(SurvivalAnalysisError):
    stage = "assumption-check"


class ExportError(SurvivalAnalysisError):
    stage = "export"
