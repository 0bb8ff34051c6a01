import pandas as pd
import pytest

from ovarian_survival import add_label_columns, labels_to_codes, map_codes, survival_pair
from ovarian_survival.config import RESIDUAL_LABELS, TREATMENT_LABELS
from ovarian_survival.exceptions import LabelingError

from conftest import make_raw


def test_survival_pair_event_sentinel():
    df = make_raw([(5.0, 1, 1, 1, 50.0, 1), (8.0, 0, 2, 2, 55.0, 2)])
    pair = survival_pair(df)
    assert list(pair.columns) == ["time", "event_observed"]
    assert pair["event_observed"].tolist() == [1, 0]


def test_survival_pair_configurable_sentinel():
    df = make_raw([(5.0, 2, 1, 1, 50.0, 1), (8.0, 1, 2, 2, 55.0, 2)])
    assert survival_pair(df, event_code=2)["event_observed"].tolist() == [1, 0]


def test_treatment_round_trip():
    codes = pd.Series([1, 2, 2, 1, 2], name="treatment_code")
    labels = map_codes(codes, TREATMENT_LABELS)
    assert list(labels) == ["control", "treatment", "treatment", "control", "treatment"]
    assert list(labels.categories) == ["control", "treatment"]
    assert labels_to_codes(labels, TREATMENT_LABELS).tolist() == codes.tolist()


def test_unknown_code_raises():
    with pytest.raises(LabelingError) as exc:
        map_codes(pd.Series([1, 2, 3], name="treatment_code"), TREATMENT_LABELS)
    assert "treatment_code" in str(exc.value)
    assert "3" in str(exc.value)
    assert exc.value.stage == "preprocess"


def test_missing_code_raises():
    with pytest.raises(LabelingError):
        map_codes(pd.Series([1.0, None]), RESIDUAL_LABELS, "residual_code")


def test_unknown_label_raises():
    with pytest.raises(LabelingError):
        labels_to_codes(pd.Series(["control", "placebo"]), TREATMENT_LABELS)


def test_add_label_columns_is_additive(raw):
    before = raw.copy()
    out = add_label_columns(raw)

    pd.testing.assert_frame_equal(raw, before)
    assert set(out.columns) - set(raw.columns) == {"event_observed", "treatment_arm", "residual_disease"}
    pd.testing.assert_frame_equal(out[list(raw.columns)], raw)
    assert out["event_observed"].sum() == 12
    assert list(out["residual_disease"].cat.categories) == ["no_residual", "residual"]


def test_add_label_columns_rejects_bad_residual_code():
    df = make_raw([(5.0, 1, 1, 3, 50.0, 1)])
    with pytest.raises(LabelingError, match="residual_code"):
        add_label_columns(df)


def test_missing_label_raises():
    with pytest.raises(LabelingError, match="<missing>"):
        labels_to_codes(pd.Series(["control", None, "treatment"]), TREATMENT_LABELS)
