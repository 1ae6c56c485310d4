"""
test_metric_index.py

Metric record validation, tiered lookup, name fallback and the metric providers.
"""

import pytest
from loguru import logger
from pydantic import ValidationError

from labscreen.commons.exceptions import MetricDataError
from labscreen.commons.logger import MATCH_CHANNEL
from labscreen.metrics.index import MetricIndex
from labscreen.metrics.models import Metric
from labscreen.metrics.provider import CsvMetricProvider, StaticMetricProvider, build_index


def metric(name, codes="", units="", **kw):
    return Metric(name=name, oru_sonic_codes=codes, oru_sonic_units=units, **kw)


CSV_TEXT = """id,diagnostic_id,name,standard_lower,standard_higher,everlab_lower,everlab_higher,min_age,max_age,gender,oru_sonic_codes,oru_sonic_units
1,10,Glucose,3.0,7.8,3.9,5.5,,,Any,GLU;GLUC,mmol/L
2,20,Ferritin,30,500,,,18.0,,,FERR; FERRITIN ;,ug/L

3,30,Vitamin D,50,150,75,150,,,,,
"""


# ----------------- Metric -----------------
def test_metric_splits_and_trims_lists():
    m = metric("Ferritin", codes="FERR; FERRITIN ;;", units=" ug/L ")
    assert m.codes == ("FERR", "FERRITIN")
    assert m.units == ("ug/L",)


def test_metric_accepts_sequences_and_field_names():
    m = Metric(name="Glucose", codes=["GLU", " "], units=("mmol/L",))
    assert m.codes == ("GLU",)
    assert m.units == ("mmol/L",)


def test_metric_blank_values():
    m = Metric.model_validate(
        {
            "id": 7,
            "name": " Ferritin ",
            "standard_lower": "",
            "everlab_higher": "300",
            "min_age": "18.0",
            "max_age": "",
            "gender": " ",
            "oru_sonic_codes": None,
        }
    )
    assert m.id == "7"
    assert m.name == "Ferritin"
    assert m.standard_lower == 0.0
    assert m.everlab_higher == 300.0
    assert m.min_age == 18
    assert m.max_age is None
    assert m.gender is None
    assert m.codes == ()
    assert not m.restricts_gender


def test_metric_gender_any_is_unrestricted():
    assert not metric("X", gender="Any").restricts_gender
    assert not metric("X", gender="any").restricts_gender
    assert metric("X", gender="F").restricts_gender


def test_metric_requires_name():
    with pytest.raises(ValidationError):
        Metric.model_validate({"name": "  "})
    with pytest.raises(ValidationError):
        Metric.model_validate({"id": "1"})


def test_metric_is_frozen():
    m = metric("Glucose", codes="GLU")
    with pytest.raises(ValidationError):
        m.name = "Other"


# ----------------- Lookup tiers -----------------
def test_exact_tier_wins_over_earlier_code_match():
    b = metric("Glucose (mmol)", codes="GLU", units="mmol/L")
    a = metric("Glucose (mg)", codes="GLU", units="mg/dL")
    index = MetricIndex([b, a])
    match = index.lookup("GLU", "mg/dL")
    assert match.metric is a
    assert match.tier == "exact"


def test_first_record_wins_within_tier():
    first = metric("First", codes="GLU", units="mmol/L")
    second = metric("Second", codes="GLU", units="mmol/L")
    index = MetricIndex([first, second])
    assert index.lookup("GLU", "mmol/L").metric is first


def test_code_tier_ignores_unit():
    a = metric("Glucose", codes="GLU", units="mmol/L")
    index = MetricIndex([a])
    match = index.lookup("GLU", "mg/dL")
    assert match.metric is a and match.tier == "code"


def test_unit_tier():
    a = metric("Ferritin", codes="FERR", units="ug/L")
    index = MetricIndex([a])
    match = index.lookup("ZZZ", "ug/L")
    assert match.metric is a and match.tier == "unit"


def test_code_tier_before_unit_tier():
    by_unit = metric("By unit", codes="AAA", units="g/L")
    by_code = metric("By code", codes="HB", units="x")
    index = MetricIndex([by_unit, by_code])
    assert index.lookup("HB", "g/L").metric is by_code


def test_partial_code_both_directions():
    a = metric("Haemoglobin A1c", codes="HBA1C", units="%")
    index = MetricIndex([a])
    assert index.lookup("HBA1", "mmol/mol").tier == "partial_code"
    assert index.lookup("HBA1C-IFCC", "mmol/mol").tier == "partial_code"


def test_partial_unit():
    a = metric("Platelets", codes="PLT", units="10^9/L")
    index = MetricIndex([a])
    match = index.lookup("XYZ", "x10^9/L")
    assert match.metric is a and match.tier == "partial_unit"


def test_empty_unit_never_partially_matches():
    a = metric("Platelets", codes="PLT", units="10^9/L")
    index = MetricIndex([a])
    assert index.lookup("XYZ", "") is None


def test_no_match():
    index = MetricIndex([metric("Glucose", codes="GLU", units="mmol/L")])
    assert index.lookup("TSH", "mIU/L") is None


def test_metric_without_codes_only_reachable_by_name():
    vitd = metric("Vitamin D")
    index = MetricIndex([vitd])
    assert index.lookup("VITD", "nmol/L") is None
    match = index.match_by_name("vitamin d, 25-OH")
    assert match.metric is vitd
    assert match.tier == "name"
    assert match.by_name


def test_name_fallback_is_case_insensitive_both_ways():
    chol = metric("Total Cholesterol")
    index = MetricIndex([chol])
    assert index.match_by_name("CHOLESTEROL").metric is chol
    assert index.match_by_name("serum total cholesterol (fasting)").metric is chol
    assert index.match_by_name("Glucose") is None
    assert index.match_by_name("") is None


def test_independent_indexes():
    one = MetricIndex([metric("Glucose", codes="GLU")])
    two = MetricIndex([metric("Glycose", codes="GLU")])
    assert one.lookup("GLU", "").metric.name == "Glucose"
    assert two.lookup("GLU", "").metric.name == "Glycose"
    assert len(one) == 1
    assert isinstance(one.metrics, tuple)


def test_lookup_decisions_go_to_match_channel():
    messages = []
    hid = logger.add(
        messages.append,
        level="TRACE",
        filter=lambda r: r["extra"].get("channel") == MATCH_CHANNEL,
        format="{message}",
    )
    try:
        index = MetricIndex([metric("Glucose", codes="GLU", units="mmol/L")])
        index.lookup("GLU", "mmol/L")
        index.lookup("TSH", "mIU/L")
    finally:
        logger.remove(hid)
    text = "".join(messages)
    assert "Match exact: Glucose" in text
    assert "TSH" in text


# ----------------- Providers -----------------
def test_csv_provider(tmp_path):
    path = tmp_path / "diagnostic_metrics.csv"
    path.write_text(CSV_TEXT, encoding="utf-8")
    metrics = CsvMetricProvider(path).load()
    assert [m.name for m in metrics] == ["Glucose", "Ferritin", "Vitamin D"]
    glucose, ferritin, vitd = metrics
    assert glucose.codes == ("GLU", "GLUC")
    assert glucose.gender == "Any"
    assert ferritin.codes == ("FERR", "FERRITIN")
    assert ferritin.everlab_lower == 0.0
    assert ferritin.min_age == 18
    assert vitd.codes == () and vitd.units == ()


def test_csv_provider_bad_row(tmp_path):
    path = tmp_path / "bad.csv"
    path.write_text("id,name,standard_lower\n1,Glucose,abc\n", encoding="utf-8")
    with pytest.raises(MetricDataError) as exc:
        CsvMetricProvider(path).load()
    assert "bad.csv:2" in str(exc.value)


def test_csv_provider_without_name_column(tmp_path):
    path = tmp_path / "bad.csv"
    path.write_text("id,code\n1,GLU\n", encoding="utf-8")
    with pytest.raises(MetricDataError):
        CsvMetricProvider(path).load()


def test_static_provider_and_build_index():
    provider = StaticMetricProvider(
        [
            {"name": "Glucose", "oru_sonic_codes": "GLU", "oru_sonic_units": "mmol/L"},
            metric("Ferritin", codes="FERR"),
        ]
    )
    index = build_index(provider)
    assert len(index) == 2
    assert index.lookup("FERR", "ug/L").metric.name == "Ferritin"


def test_static_provider_invalid_record():
    with pytest.raises(MetricDataError):
        StaticMetricProvider([{"standard_lower": "1"}]).load()
