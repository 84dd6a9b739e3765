"""Tests for the domain confidence calculator and its cap/floor rules."""

from datetime import datetime, timedelta, timezone

import pytest

from eden.prime_scorecard.confidence import (
    compute_components,
    compute_domain_confidence,
    no_history_stability,
)
from eden.prime_scorecard.defaults import DEFAULT_REGISTRY
from eden.prime_scorecard.registry import FLOOR, ConfidenceRule, DomainConfig, EvidencePredicate
from eden.prime_scorecard.resolve import resolve_domain_evidence
from eden.prime_scorecard.types import PRIME_DOMAINS, Domain, EvidenceItem, SourceType, Unestimable

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _item(domain, key, value, source, days_ago=0.0, measured=True):
    return EvidenceItem(
        domain=domain,
        driver_key=key,
        value=value,
        source_type=source,
        measured_at=NOW - timedelta(days=days_ago) if measured else None,
    )


def _confidence(domain, items, **kwargs):
    return compute_domain_confidence(domain, items, DEFAULT_REGISTRY.domain(domain), NOW, **kwargs)


def test_no_evidence_gives_zero_confidence():
    for domain in PRIME_DOMAINS:
        confidence, _ = _confidence(domain, [])
        assert confidence == 0.0


def test_metabolism_proxy_only_is_capped_at_40():
    """coverage .15, quality .4, freshness 1 -> raw 40.25 -> capped 40"""
    items = [_item(Domain.METABOLISM, "metabolic_risk", "no_risk", SourceType.SELF_REPORT_PROXY)]
    resolved = resolve_domain_evidence(DEFAULT_REGISTRY.domain(Domain.METABOLISM), items)
    components = compute_components(resolved, NOW)
    assert components.coverage == pytest.approx(0.15)
    assert components.quality == pytest.approx(0.4)
    assert components.freshness == pytest.approx(1.0)
    assert components.stability == 0.0
    assert components.raw == pytest.approx(40.25)

    confidence, notes = _confidence(Domain.METABOLISM, items)
    assert confidence == 40.0
    assert "Capped at 40%: no lab biomarker present" in notes


def test_metabolism_with_lab_biomarker_not_capped():
    items = [_item(Domain.METABOLISM, "hba1c", 5.4, SourceType.LAB)]
    confidence, notes = _confidence(Domain.METABOLISM, items)
    assert confidence == pytest.approx(62.25)
    assert not any(n.startswith("Capped") for n in notes)


def test_metabolism_self_reported_biomarker_still_capped():
    items = [
        _item(Domain.METABOLISM, "hba1c", 5.4, SourceType.MEASURED_SELF_REPORT),
        _item(Domain.METABOLISM, "apob", 70, SourceType.MEASURED_SELF_REPORT),
        _item(Domain.METABOLISM, "hscrp", 0.5, SourceType.MEASURED_SELF_REPORT),
    ]
    confidence, _ = _confidence(Domain.METABOLISM, items)
    assert confidence == 40.0


def test_freshness_decays_with_half_life():
    """apob half-life 365 days: a year-old lab value has freshness 0.5"""
    items = [_item(Domain.METABOLISM, "apob", 90, SourceType.LAB, days_ago=365)]
    confidence, _ = _confidence(Domain.METABOLISM, items)
    assert confidence == pytest.approx(100 * (0.35 * 0.30 + 0.25 * 1.0 + 0.25 * 0.5))


def test_unknown_measurement_time_has_zero_freshness():
    items = [_item(Domain.HEART, "rhr", 60, SourceType.DEVICE, measured=False)]
    confidence, notes = _confidence(Domain.HEART, items)
    assert confidence == pytest.approx(28.75)
    assert "Freshness: 0.00" in notes


def test_recovery_device_sleep_and_hrv_floor_is_noop():
    """coverage .75, quality .8, freshness 1 -> 71.25, floor does not lower it"""
    items = [
        _item(Domain.RECOVERY, "sleep_duration", 7.2, SourceType.DEVICE),
        _item(Domain.RECOVERY, "hrv", 65, SourceType.DEVICE),
    ]
    confidence, notes = _confidence(Domain.RECOVERY, items)
    assert confidence == pytest.approx(71.25)
    assert not any(n.startswith("Raised") for n in notes)


def test_recovery_device_sleep_raised_to_70():
    items = [_item(Domain.RECOVERY, "sleep_duration", 7.2, SourceType.DEVICE)]
    resolved = resolve_domain_evidence(DEFAULT_REGISTRY.domain(Domain.RECOVERY), items)
    assert compute_components(resolved, NOW).raw == pytest.approx(60.75)

    confidence, notes = _confidence(Domain.RECOVERY, items)
    assert confidence == 70.0
    assert "Raised to 70%: device-tracked sleep present" in notes


def test_recovery_floor_needs_the_primary_sleep_driver():
    items = [_item(Domain.RECOVERY, "hrv", 65, SourceType.DEVICE)]
    confidence, _ = _confidence(Domain.RECOVERY, items)
    assert confidence == pytest.approx(55.5)


def test_mind_without_test_capped_at_35():
    items = [
        _item(Domain.MIND, "focus_stability", "mostly_stable", SourceType.SELF_REPORT_PROXY),
        _item(Domain.MIND, "brain_fog", "rarely", SourceType.SELF_REPORT_PROXY),
    ]
    confidence, notes = _confidence(Domain.MIND, items)
    assert confidence == 35.0
    assert "Capped at 35%: no focus test taken" in notes


def test_mind_with_test_not_capped():
    items = [_item(Domain.MIND, "focus_test", 80, SourceType.TEST)]
    confidence, _ = _confidence(Domain.MIND, items)
    assert confidence == pytest.approx(65.0)


def test_frame_image_estimates_cannot_reach_high():
    """All frame drivers from photos and quick checks: raw about 72.4, capped at 69"""
    items = [
        _item(Domain.FRAME, "body_fat_pct", 22, SourceType.IMAGE_ESTIMATE),
        _item(Domain.FRAME, "waist_to_height", 0.48, SourceType.IMAGE_ESTIMATE),
        _item(Domain.FRAME, "pushups", "16-30", SourceType.SELF_REPORT_PROXY),
        _item(Domain.FRAME, "pain_limitation", "none", SourceType.SELF_REPORT_PROXY),
    ]
    resolved = resolve_domain_evidence(DEFAULT_REGISTRY.domain(Domain.FRAME), items)
    assert compute_components(resolved, NOW).raw == pytest.approx(72.43, abs=0.01)

    confidence, notes = _confidence(Domain.FRAME, items)
    assert confidence == 69.0
    assert "Capped at 69%: no device or measured value present" in notes


def test_frame_measured_value_lifts_cap():
    items = [
        _item(Domain.FRAME, "body_fat_pct", 22, SourceType.IMAGE_ESTIMATE),
        _item(Domain.FRAME, "waist_to_height", 0.48, SourceType.MEASURED_SELF_REPORT),
        _item(Domain.FRAME, "pushups", "16-30", SourceType.SELF_REPORT_PROXY),
        _item(Domain.FRAME, "pain_limitation", "none", SourceType.SELF_REPORT_PROXY),
    ]
    confidence, _ = _confidence(Domain.FRAME, items)
    assert confidence == pytest.approx(73.53, abs=0.01)


def test_quality_uses_best_source_and_freshness_latest_item():
    """Device reading ten days old plus a fresh prior: quality .8, freshness from the prior"""
    items = [
        _item(Domain.HEART, "rhr", 58, SourceType.DEVICE, days_ago=10),
        _item(Domain.HEART, "rhr", 70, SourceType.PRIOR),
    ]
    resolved = resolve_domain_evidence(DEFAULT_REGISTRY.domain(Domain.HEART), items)
    components = compute_components(resolved, NOW)
    assert components.quality == pytest.approx(0.8)
    assert components.freshness == pytest.approx(1.0)


def test_unestimable_attempt_counts_for_quality_and_freshness_only():
    items = [_item(Domain.FRAME, "body_fat_pct", Unestimable("too dark"), SourceType.IMAGE_ESTIMATE)]
    resolved = resolve_domain_evidence(DEFAULT_REGISTRY.domain(Domain.FRAME), items)
    components = compute_components(resolved, NOW)
    assert components.coverage == 0.0
    assert components.quality == pytest.approx(0.55)

    confidence, _ = _confidence(Domain.FRAME, items)
    assert confidence == pytest.approx(38.75)


def test_stability_is_zero_without_history():
    items = [_item(Domain.HEART, "rhr", 58, SourceType.DEVICE)]
    resolved = resolve_domain_evidence(DEFAULT_REGISTRY.domain(Domain.HEART), items)
    assert no_history_stability(resolved, NOW) == 0.0


def test_stability_extension_point_feeds_the_blend():
    items = [_item(Domain.HEART, "rhr", 58, SourceType.DEVICE)]
    baseline, _ = _confidence(Domain.HEART, items)
    boosted, notes = _confidence(Domain.HEART, items, stability=lambda resolved, now: 1.0)
    assert baseline == pytest.approx(53.75)
    assert boosted == pytest.approx(68.75)
    assert "Stability: 1.00" in notes


def test_confidence_clamped_to_bounds():
    heart = DEFAULT_REGISTRY.domain(Domain.HEART)
    config = DomainConfig(
        Domain.HEART,
        heart.drivers,
        confidence_rules=(
            ConfidenceRule(FLOOR, 100, EvidencePredicate(frozenset({SourceType.LAB})), "Raised to 100%"),
        ),
    )
    items = [_item(Domain.HEART, key, value, SourceType.LAB) for key, value in
             (("bp", 115), ("rhr", 55), ("vo2max", 45), ("cardio_fitness", "average"))]
    confidence, notes = compute_domain_confidence(Domain.HEART, items, config, NOW, stability=lambda r, n: 5.0)
    assert confidence == 100.0
    assert 0.0 <= confidence <= 100.0


def test_invalid_evidence_does_not_count_toward_coverage():
    items = [_item(Domain.HEART, "rhr", 400, SourceType.DEVICE)]
    confidence, _ = _confidence(Domain.HEART, items)
    assert confidence == 0.0


HEART_FULL = (("bp", 118), ("rhr", 58), ("vo2max", 45), ("cardio_fitness", "average"))
FRAME_FULL = (
    ("body_fat_pct", 20),
    ("waist_to_height", 0.5),
    ("bmi", 22),
    ("pushups", "6-15"),
    ("pain_limitation", "none"),
)


def _coverage(domain, pairs):
    items = [_item(domain, key, value, SourceType.MEASURED_SELF_REPORT) for key, value in pairs]
    resolved = resolve_domain_evidence(DEFAULT_REGISTRY.domain(domain), items)
    return compute_components(resolved, NOW).coverage


def test_coverage_is_full_when_every_driver_present():
    assert _coverage(Domain.HEART, HEART_FULL) == pytest.approx(1.0)


def test_coverage_is_full_with_bmi_suppressed():
    """bmi weight .15 is dropped and the rest renormalized over .85"""
    assert _coverage(Domain.FRAME, FRAME_FULL) == pytest.approx(1.0)
    without_bmi = tuple(p for p in FRAME_FULL if p[0] != "bmi")
    assert _coverage(Domain.FRAME, without_bmi) == pytest.approx(1.0)


@pytest.mark.parametrize("dropped", [key for key, _ in HEART_FULL])
def test_coverage_below_full_when_a_heart_driver_missing(dropped):
    pairs = tuple(p for p in HEART_FULL if p[0] != dropped)
    assert _coverage(Domain.HEART, pairs) < 1.0


@pytest.mark.parametrize("dropped", ["body_fat_pct", "waist_to_height", "pushups", "pain_limitation"])
def test_coverage_below_full_when_a_frame_driver_missing(dropped):
    pairs = tuple(p for p in FRAME_FULL if p[0] != dropped)
    assert _coverage(Domain.FRAME, pairs) < 1.0
