"""Mapping helpers between stored metric rows and Prime driver keys.

These functions centralize the mapping so stored metric codes and source
identifiers can evolve without changing the scoring logic.
"""

from typing import Any, Optional

from .types import SourceType, Unestimable

METRIC_CODE_TO_DRIVER = {
    # Heart
    "blood_pressure": "bp",
    "bp_systolic": "bp",
    "resting_hr": "rhr",
    "resting_heart_rate": "rhr",
    "vo2max": "vo2max",
    "cardio_fitness": "cardio_fitness",
    "cardio_self_rating": "cardio_fitness",
    # Frame
    "body_fat": "body_fat_pct",
    "body_fat_pct": "body_fat_pct",
    "body_fat_range": "body_fat_pct",
    "waist_to_height": "waist_to_height",
    "bmi": "bmi",
    "pushups": "pushups",
    "pushups_count": "pushups",
    "pain_limitation": "pain_limitation",
    # Metabolism
    "hba1c": "hba1c",
    "apob": "apob",
    "hscrp": "hscrp",
    "hs_crp": "hscrp",
    "metabolic_risk": "metabolic_risk",
    # Recovery
    "sleep": "sleep_duration",
    "sleep_duration": "sleep_duration",
    "hrv": "hrv",
    "insomnia": "insomnia",
    "insomnia_frequency": "insomnia",
    "sleep_regularity": "sleep_regularity",
    # Mind
    "focus_test": "focus_test",
    "focus_check": "focus_test",
    "focus_stability": "focus_stability",
    "brain_fog": "brain_fog",
}

SOURCE_TO_SOURCE_TYPE = {
    "lab": SourceType.LAB,
    "lab_report": SourceType.LAB,
    "test": SourceType.TEST,
    "cognitive_test": SourceType.TEST,
    "device": SourceType.DEVICE,
    "apple_health": SourceType.DEVICE,
    "wearable": SourceType.DEVICE,
    "measured_self_report": SourceType.MEASURED_SELF_REPORT,
    "manual_entry": SourceType.MEASURED_SELF_REPORT,
    "image_estimate": SourceType.IMAGE_ESTIMATE,
    "photo": SourceType.IMAGE_ESTIMATE,
    "self_report": SourceType.SELF_REPORT_PROXY,
    "self_report_proxy": SourceType.SELF_REPORT_PROXY,
    "prime_check": SourceType.SELF_REPORT_PROXY,
    "prior": SourceType.PRIOR,
}


def driver_key_for(metric_code: str) -> Optional[str]:
    return METRIC_CODE_TO_DRIVER.get((metric_code or "").strip().lower())


def source_type_for(source: str) -> Optional[SourceType]:
    return SOURCE_TO_SOURCE_TYPE.get((source or "").strip().lower())


PUSHUP_BUCKETS = ((5, "0-5"), (15, "6-15"), (30, "16-30"))


def _bucket(value: float, buckets, top: str) -> str:
    for upper, label in buckets:
        if value <= upper:
            return label
    return top


def pushup_bucket(count: float) -> str:
    """Counted push-ups are stored as a number; the driver scores buckets."""
    return _bucket(count, PUSHUP_BUCKETS, "31+")


def insomnia_bucket(nights_per_week: float) -> str:
    if nights_per_week < 1:
        return "<1"
    return _bucket(nights_per_week, ((2, "1-2"), (4, "3-4")), "5+")


def regularity_answer(flag: float) -> str:
    return "true" if flag else "false"


# Categorical drivers whose rows may arrive as numbers
NUMERIC_TO_ANSWER = {
    "pushups": pushup_bucket,
    "insomnia": insomnia_bucket,
    "sleep_regularity": regularity_answer,
}


def raw_value(driver_key: str, value_numeric: Optional[float], value_text: Optional[str], unable_to_estimate: bool = False) -> Any:
    """Pick the value to score from a stored row.

    Blood pressure is stored as "systolic/diastolic" text; only systolic is
    scored. Numeric rows for categorical drivers become their answer
    bucket. Rows flagged unable_to_estimate become Unestimable.
    """
    if unable_to_estimate:
        return Unestimable(reason=value_text)
    if value_numeric is not None:
        if driver_key in NUMERIC_TO_ANSWER:
            return NUMERIC_TO_ANSWER[driver_key](value_numeric)
        return float(value_numeric)
    if value_text is None:
        return Unestimable()
    text = value_text.strip()
    if driver_key == "bp" and "/" in text:
        return text.split("/", 1)[0].strip()
    return text
