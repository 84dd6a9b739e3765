"""Tests for the domain score calculator and evidence resolution."""

from datetime import datetime, timedelta, timezone

import pytest

from eden.prime_scorecard.confidence import compute_domain_confidence
from eden.prime_scorecard.defaults import DEFAULT_REGISTRY
from eden.prime_scorecard.errors import ConfigurationError
from eden.prime_scorecard.resolve import resolve_domain_evidence
from eden.prime_scorecard.scoring import compute_domain_score
from eden.prime_scorecard.types import Domain, EvidenceItem, SourceType, Unestimable

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _item(domain, key, value, source=SourceType.DEVICE, days_ago=0.0):
    return EvidenceItem(domain, key, value, source, NOW - timedelta(days=days_ago))


def _score(domain, items):
    return compute_domain_score(domain, items, DEFAULT_REGISTRY.domain(domain))


def test_no_evidence_gives_null_score():
    score, notes = _score(Domain.HEART, [])
    assert score is None
    assert "No usable evidence: score unavailable" in notes


def test_single_driver_score():
    score, notes = _score(Domain.HEART, [_item(Domain.HEART, "rhr", 55)])
    assert score == pytest.approx(90.0)
    assert notes[0] == "Resting heart rate: 55 bpm from device -> 90"


def test_score_renormalized_over_present_drivers():
    items = [
        _item(Domain.HEART, "rhr", 50),  # 95, weight .25
        _item(Domain.HEART, "bp", 135),  # 65, weight .30
    ]
    score, _ = _score(Domain.HEART, items)
    assert score == pytest.approx((0.25 * 95 + 0.30 * 65) / 0.55)


def test_most_recent_item_wins_for_scoring():
    items = [
        _item(Domain.HEART, "rhr", 80, SourceType.LAB, days_ago=10),
        _item(Domain.HEART, "rhr", 60, SourceType.MEASURED_SELF_REPORT),
    ]
    score, _ = _score(Domain.HEART, items)
    assert score == pytest.approx(85.0)


def test_same_timestamp_prefers_higher_quality_source():
    items = [
        _item(Domain.HEART, "rhr", 80, SourceType.SELF_REPORT_PROXY),
        _item(Domain.HEART, "rhr", 60, SourceType.DEVICE),
    ]
    score, _ = _score(Domain.HEART, items)
    assert score == pytest.approx(85.0)


def test_unknown_timestamp_loses_to_dated_item():
    items = [
        EvidenceItem(Domain.HEART, "rhr", 90, SourceType.LAB, None),
        _item(Domain.HEART, "rhr", 60, SourceType.PRIOR, days_ago=400),
    ]
    score, _ = _score(Domain.HEART, items)
    assert score == pytest.approx(85.0)


def test_out_of_range_value_excluded_and_flagged():
    score, notes = _score(Domain.HEART, [_item(Domain.HEART, "rhr", 300)])
    assert score is None
    assert any(n.startswith("Excluded Resting heart rate: 300 bpm is outside") for n in notes)


def test_out_of_range_value_falls_back_to_valid_item():
    items = [
        _item(Domain.HEART, "rhr", 300),
        _item(Domain.HEART, "rhr", 60, days_ago=3),
    ]
    score, _ = _score(Domain.HEART, items)
    assert score == pytest.approx(85.0)


def test_categorical_driver():
    score, _ = _score(Domain.METABOLISM, [_item(Domain.METABOLISM, "metabolic_risk", "prediabetes")])
    assert score == 50.0


def test_unknown_category_excluded():
    score, notes = _score(Domain.MIND, [_item(Domain.MIND, "brain_fog", "constantly")])
    assert score is None
    assert any("not a recognised answer" in n for n in notes)


def test_sleep_bucket_and_boolean_regularity():
    items = [
        _item(Domain.RECOVERY, "sleep_duration", "7-8h", SourceType.SELF_REPORT_PROXY),
        _item(Domain.RECOVERY, "sleep_regularity", True, SourceType.SELF_REPORT_PROXY),
    ]
    score, _ = _score(Domain.RECOVERY, items)
    assert score == pytest.approx((0.45 * 95 + 0.10 * 90) / 0.55)


def test_ladder_label_in_explanation():
    _, notes = _score(Domain.METABOLISM, [_item(Domain.METABOLISM, "hba1c", 6.0, SourceType.LAB)])
    assert notes[0] == "HbA1c: 6 % from lab result -> 60 (prediabetes range)"


def test_bmi_used_without_body_composition():
    score, notes = _score(Domain.FRAME, [_item(Domain.FRAME, "bmi", 22, SourceType.MEASURED_SELF_REPORT)])
    assert score == pytest.approx(100.0)
    assert not any("BMI not used" in n for n in notes)


def test_bmi_suppressed_by_body_fat():
    body_fat = _item(Domain.FRAME, "body_fat_pct", 20, SourceType.IMAGE_ESTIMATE)
    pushups = _item(Domain.FRAME, "pushups", "6-15", SourceType.SELF_REPORT_PROXY)
    bmi = _item(Domain.FRAME, "bmi", 31, SourceType.MEASURED_SELF_REPORT)

    with_bmi, notes = _score(Domain.FRAME, [body_fat, pushups, bmi])
    without_bmi, _ = _score(Domain.FRAME, [body_fat, pushups])
    assert with_bmi == without_bmi == pytest.approx((0.30 * 75 + 0.20 * 50) / 0.50)
    assert "BMI not used: body composition evidence is present" in notes
    assert not any(n.startswith("BMI:") for n in notes)

    frame = DEFAULT_REGISTRY.domain(Domain.FRAME)
    conf_with, _ = compute_domain_confidence(Domain.FRAME, [body_fat, pushups, bmi], frame, NOW)
    conf_without, _ = compute_domain_confidence(Domain.FRAME, [body_fat, pushups], frame, NOW)
    assert conf_with == conf_without


def test_bmi_suppressed_by_waist_to_height():
    items = [
        _item(Domain.FRAME, "waist_to_height", 0.5, SourceType.MEASURED_SELF_REPORT),
        _item(Domain.FRAME, "bmi", 35, SourceType.MEASURED_SELF_REPORT),
    ]
    score, _ = _score(Domain.FRAME, items)
    assert score == pytest.approx(90.0)


def test_unestimable_body_fat_does_not_suppress_bmi():
    items = [
        _item(Domain.FRAME, "body_fat_pct", Unestimable(), SourceType.IMAGE_ESTIMATE),
        _item(Domain.FRAME, "bmi", 22, SourceType.MEASURED_SELF_REPORT),
    ]
    score, notes = _score(Domain.FRAME, items)
    assert score == pytest.approx(100.0)
    assert "Body fat: photo estimate was unable to estimate a value" in notes


def test_unknown_driver_and_domain_mismatch_ignored():
    items = [
        _item(Domain.HEART, "hba1c", 5.2, SourceType.LAB),
        _item(Domain.HEART, "steps", 9000),
    ]
    score, notes = _score(Domain.HEART, items)
    assert score is None
    assert "Ignored hba1c: not a heart driver" in notes
    assert "Ignored steps: not a heart driver" in notes


def test_item_for_another_domain_is_ignored():
    items = [_item(Domain.METABOLISM, "hba1c", 5.2, SourceType.LAB)]
    score, notes = _score(Domain.HEART, items)
    assert score is None
    assert "Ignored hba1c: recorded under metabolism, not heart" in notes


def test_missing_drivers_and_fastest_upgrade():
    _, notes = _score(Domain.HEART, [_item(Domain.HEART, "rhr", 60)])
    assert "Missing: Blood pressure (systolic), VO2 max, Cardio fitness (self rating)" in notes
    assert "Fastest upgrade: Take a blood pressure reading" in notes


def test_explanation_order():
    items = [
        _item(Domain.FRAME, "body_fat_pct", 20, SourceType.IMAGE_ESTIMATE),
        _item(Domain.FRAME, "pushups", 12),
        _item(Domain.FRAME, "grip_strength", 40),
    ]
    _, notes = _score(Domain.FRAME, items)
    order = [
        next(i for i, n in enumerate(notes) if n.startswith("Body fat: 20")),
        next(i for i, n in enumerate(notes) if n.startswith("Excluded Push-ups")),
        next(i for i, n in enumerate(notes) if n.startswith("BMI not used")),
        next(i for i, n in enumerate(notes) if n.startswith("Ignored grip_strength")),
        next(i for i, n in enumerate(notes) if n.startswith("Missing:")),
        next(i for i, n in enumerate(notes) if n.startswith("Score ")),
    ]
    assert order == sorted(order)


def test_score_stays_within_bounds():
    items = [_item(Domain.MIND, "focus_test", 100, SourceType.TEST)]
    score, _ = _score(Domain.MIND, items)
    assert score == 100.0


def test_domain_must_match_config():
    with pytest.raises(ConfigurationError):
        compute_domain_score(Domain.HEART, [], DEFAULT_REGISTRY.domain(Domain.MIND))


def _resolve(domain, items):
    return resolve_domain_evidence(DEFAULT_REGISTRY.domain(domain), items)


# --- source conflicts -------------------------------------------------------

def test_disagreeing_sources_flag_a_conflict():
    items = [
        _item(Domain.HEART, "rhr", 60, SourceType.DEVICE),
        _item(Domain.HEART, "rhr", 70, SourceType.MEASURED_SELF_REPORT, days_ago=3),
    ]
    rhr = next(r for r in _resolve(Domain.HEART, items).drivers if r.driver.driver_key == "rhr")
    assert rhr.conflict is True

    score, notes = _score(Domain.HEART, items)
    assert score == pytest.approx(85.0)
    assert "Resting heart rate: sources disagree by more than 10%, using the device value" in notes


def test_close_values_are_not_a_conflict():
    items = [
        _item(Domain.HEART, "rhr", 60, SourceType.DEVICE),
        _item(Domain.HEART, "rhr", 65, SourceType.MEASURED_SELF_REPORT, days_ago=3),
    ]
    rhr = next(r for r in _resolve(Domain.HEART, items).drivers if r.driver.driver_key == "rhr")
    assert rhr.conflict is False
    _, notes = _score(Domain.HEART, items)
    assert not any("sources disagree" in n for n in notes)


def test_categorical_answers_never_conflict():
    items = [
        _item(Domain.MIND, "brain_fog", "rarely", SourceType.SELF_REPORT_PROXY),
        _item(Domain.MIND, "brain_fog", "often", SourceType.SELF_REPORT_PROXY, days_ago=5),
    ]
    fog = next(r for r in _resolve(Domain.MIND, items).drivers if r.driver.driver_key == "brain_fog")
    assert fog.conflict is False


def test_excluded_values_do_not_cause_a_conflict():
    items = [
        _item(Domain.HEART, "rhr", 60, SourceType.DEVICE),
        _item(Domain.HEART, "rhr", 400, SourceType.MEASURED_SELF_REPORT, days_ago=3),
    ]
    rhr = next(r for r in _resolve(Domain.HEART, items).drivers if r.driver.driver_key == "rhr")
    assert rhr.conflict is False


# --- risk flags -------------------------------------------------------------

def test_bp_crisis_flag():
    resolved = _resolve(Domain.HEART, [_item(Domain.HEART, "bp", 185, SourceType.MEASURED_SELF_REPORT)])
    assert resolved.risk_flags() == {"bp_crisis_flag": True}
    _, notes = _score(Domain.HEART, [_item(Domain.HEART, "bp", 185, SourceType.MEASURED_SELF_REPORT)])
    assert "Risk flag: systolic blood pressure in the crisis range (180+ mmHg)" in notes

    normal = _resolve(Domain.HEART, [_item(Domain.HEART, "bp", 150, SourceType.MEASURED_SELF_REPORT)])
    assert normal.risk_flags() == {"bp_crisis_flag": False}
    assert normal.risk_notes() == []


def test_bp_crisis_flag_reads_systolic_text():
    resolved = _resolve(Domain.HEART, [_item(Domain.HEART, "bp", "182", SourceType.MEASURED_SELF_REPORT)])
    assert resolved.risk_flags() == {"bp_crisis_flag": True}


def test_bp_crisis_flag_uses_the_latest_reading():
    items = [
        _item(Domain.HEART, "bp", 190, SourceType.MEASURED_SELF_REPORT, days_ago=20),
        _item(Domain.HEART, "bp", 125, SourceType.MEASURED_SELF_REPORT),
    ]
    assert _resolve(Domain.HEART, items).risk_flags() == {"bp_crisis_flag": False}


def test_severe_pain_flag():
    severe = _resolve(Domain.FRAME, [_item(Domain.FRAME, "pain_limitation", "severe", SourceType.SELF_REPORT_PROXY)])
    assert severe.risk_flags() == {"severe_pain_flag": True}
    assert severe.risk_notes() == ["Risk flag: severe pain limits movement"]

    mild = _resolve(Domain.FRAME, [_item(Domain.FRAME, "pain_limitation", "mild", SourceType.SELF_REPORT_PROXY)])
    assert mild.risk_flags() == {"severe_pain_flag": False}


def test_diabetes_flag():
    reported = _resolve(
        Domain.METABOLISM, [_item(Domain.METABOLISM, "metabolic_risk", "diabetes", SourceType.SELF_REPORT_PROXY)]
    )
    assert reported.risk_flags() == {"diabetes_flag": True}

    prediabetes = _resolve(
        Domain.METABOLISM, [_item(Domain.METABOLISM, "metabolic_risk", "prediabetes", SourceType.SELF_REPORT_PROXY)]
    )
    assert prediabetes.risk_flags() == {"diabetes_flag": False}


def test_risk_flags_absent_without_the_driver():
    assert _resolve(Domain.HEART, [_item(Domain.HEART, "rhr", 60)]).risk_flags() == {}
    assert _resolve(Domain.RECOVERY, [_item(Domain.RECOVERY, "hrv", 60)]).risk_flags() == {}
