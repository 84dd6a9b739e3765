"""Default Prime scoring rule set (revision "prime-v3").

Anchors and ladders are deliberately coarse: they describe general adult
reference ranges and are not diagnostic thresholds.
"""

from .registry import (
    CAP,
    FLOOR,
    Band,
    ConfidenceRule,
    DomainConfig,
    Driver,
    DriverRegistry,
    EvidencePredicate,
    RiskFlagRule,
    ScoringRule,
    SuppressionRule,
)
from .types import Domain, SourceType

REGISTRY_REVISION = "prime-v3"

PRIMARY_SLEEP_DRIVER = "sleep_duration"


def _ladder(*bands):
    return tuple(Band(score=s, min=lo, max=hi, label=label) for lo, hi, s, label in bands)


HEART = DomainConfig(
    domain=Domain.HEART,
    drivers=(
        Driver(
            Domain.HEART, "bp", 0.30, 90, 14,
            ScoringRule(bands=_ladder(
                (None, 120, 100, "optimal"),
                (120, 130, 85, "elevated"),
                (130, 140, 65, "stage 1"),
                (140, 160, 40, "stage 2"),
                (160, 180, 20, "severe"),
                (180, None, 5, "crisis"),
            )),
            display_name="Blood pressure (systolic)",
            unit="mmHg",
            valid_range=(70, 250),
            missing_copy="Take a blood pressure reading",
        ),
        Driver(
            Domain.HEART, "rhr", 0.25, 30, 14,
            ScoringRule(anchors=((40, 100), (50, 95), (60, 85), (70, 65), (80, 45), (90, 25), (100, 10))),
            display_name="Resting heart rate",
            unit="bpm",
            valid_range=(30, 220),
            missing_copy="Sync a wearable for resting heart rate",
        ),
        Driver(
            Domain.HEART, "vo2max", 0.25, 180, 30,
            ScoringRule(bands=_ladder(
                (50, None, 100, "excellent"),
                (40, 50, 80, "good"),
                (30, 40, 60, "fair"),
                (20, 30, 35, "low"),
                (None, 20, 15, "very low"),
            )),
            display_name="VO2 max",
            unit="mL/kg/min",
            valid_range=(10, 90),
            missing_copy="Sync a wearable that estimates VO2 max",
        ),
        Driver(
            Domain.HEART, "cardio_fitness", 0.20, 180, 0,
            ScoringRule(categories={
                "below_avg": 25,
                "slightly_below": 40,
                "average": 55,
                "slightly_above": 70,
                "above_avg": 85,
            }),
            display_name="Cardio fitness (self rating)",
            missing_copy="Rate your cardio fitness",
        ),
    ),
    risk_flags=(
        RiskFlagRule(
            flag="bp_crisis_flag",
            driver_key="bp",
            at_least=180,
            message="Risk flag: systolic blood pressure in the crisis range (180+ mmHg)",
        ),
    ),
)

FRAME = DomainConfig(
    domain=Domain.FRAME,
    drivers=(
        Driver(
            Domain.FRAME, "body_fat_pct", 0.30, 90, 30,
            ScoringRule(bands=_ladder(
                (None, 18, 100, "lean"),
                (18, 25, 75, "fit"),
                (25, 32, 50, "average"),
                (32, 38, 25, "high"),
                (38, None, 10, "very high"),
            )),
            display_name="Body fat",
            unit="%",
            valid_range=(2, 70),
            missing_copy="Upload a body photo or a DEXA scan",
        ),
        Driver(
            Domain.FRAME, "waist_to_height", 0.25, 90, 30,
            ScoringRule(anchors=((0.40, 100), (0.50, 90), (0.55, 70), (0.60, 45), (0.70, 15))),
            display_name="Waist-to-height ratio",
            valid_range=(0.3, 1.0),
            missing_copy="Measure your waist",
        ),
        Driver(
            Domain.FRAME, "bmi", 0.15, 90, 30,
            ScoringRule(anchors=((16, 40), (18.5, 90), (22, 100), (25, 90), (30, 60), (35, 35), (40, 15))),
            display_name="BMI",
            unit="kg/m2",
            valid_range=(10, 80),
            missing_copy="Add your height and weight",
        ),
        Driver(
            Domain.FRAME, "pushups", 0.20, 90, 0,
            ScoringRule(categories={
                "not_possible": 10,
                "0-5": 25,
                "6-15": 50,
                "16-30": 75,
                "31+": 95,
            }),
            display_name="Push-ups",
            missing_copy="Try a push-up test",
        ),
        Driver(
            Domain.FRAME, "pain_limitation", 0.10, 60, 0,
            ScoringRule(categories={"none": 100, "mild": 75, "moderate": 45, "severe": 15}),
            display_name="Pain limitation",
            missing_copy="Tell us about any pain that limits movement",
        ),
    ),
    suppressions=(
        SuppressionRule(
            driver_key="bmi",
            suppressed_by=("body_fat_pct", "waist_to_height"),
            reason="BMI not used: body composition evidence is present",
        ),
    ),
    confidence_rules=(
        ConfidenceRule(
            kind=CAP,
            limit=69,
            predicate=EvidencePredicate(
                source_types=frozenset({SourceType.DEVICE, SourceType.MEASURED_SELF_REPORT}),
            ),
            message="Capped at 69%: no device or measured value present",
        ),
    ),
    risk_flags=(
        RiskFlagRule(
            flag="severe_pain_flag",
            driver_key="pain_limitation",
            answers=frozenset({"severe"}),
            message="Risk flag: severe pain limits movement",
        ),
    ),
)

METABOLISM = DomainConfig(
    domain=Domain.METABOLISM,
    drivers=(
        Driver(
            Domain.METABOLISM, "hba1c", 0.35, 180, 90,
            ScoringRule(bands=_ladder(
                (None, 5.7, 100, "normal"),
                (5.7, 6.5, 60, "prediabetes range"),
                (6.5, 8.0, 30, "diabetes range"),
                (8.0, None, 10, "high"),
            )),
            display_name="HbA1c",
            unit="%",
            valid_range=(3, 20),
            missing_copy="Upload a lab report with HbA1c",
        ),
        Driver(
            Domain.METABOLISM, "apob", 0.30, 365, 90,
            ScoringRule(bands=_ladder(
                (None, 80, 100, "optimal"),
                (80, 100, 80, "good"),
                (100, 130, 55, "borderline"),
                (130, None, 25, "high"),
            )),
            display_name="ApoB",
            unit="mg/dL",
            valid_range=(10, 300),
            missing_copy="Upload a lab report with ApoB",
        ),
        Driver(
            Domain.METABOLISM, "hscrp", 0.20, 180, 90,
            ScoringRule(bands=_ladder(
                (None, 1, 100, "low"),
                (1, 3, 70, "average"),
                (3, 10, 40, "high"),
                (10, None, 20, "very high"),
            )),
            display_name="hs-CRP",
            unit="mg/L",
            valid_range=(0, 100),
            missing_copy="Upload a lab report with hs-CRP",
        ),
        Driver(
            Domain.METABOLISM, "metabolic_risk", 0.15, 365, 0,
            ScoringRule(categories={
                "no_risk": 90,
                "family_history_only": 75,
                "prediabetes": 50,
                "one_condition": 45,
                "multiple_conditions": 30,
                "diabetes": 20,
            }),
            display_name="Metabolic risk",
            missing_copy="Answer the metabolic risk question",
        ),
    ),
    confidence_rules=(
        ConfidenceRule(
            kind=CAP,
            limit=40,
            predicate=EvidencePredicate(
                source_types=frozenset({SourceType.LAB}),
                driver_keys=frozenset({"hba1c", "apob", "hscrp"}),
            ),
            message="Capped at 40%: no lab biomarker present",
        ),
    ),
    risk_flags=(
        RiskFlagRule(
            flag="diabetes_flag",
            driver_key="metabolic_risk",
            answers=frozenset({"diabetes"}),
            message="Risk flag: diabetes reported",
        ),
    ),
)

RECOVERY = DomainConfig(
    domain=Domain.RECOVERY,
    drivers=(
        Driver(
            Domain.RECOVERY, PRIMARY_SLEEP_DRIVER, 0.45, 14, 7,
            ScoringRule(
                anchors=((4, 10), (5, 35), (6, 65), (7, 95), (8, 100), (9, 90), (10, 70), (12, 40)),
                categories={"<6h": 40, "6-7h": 70, "7-8h": 95, "8h+": 85},
            ),
            display_name="Sleep duration",
            unit="h",
            valid_range=(0, 24),
            missing_copy="Sync sleep from a wearable",
        ),
        Driver(
            Domain.RECOVERY, "hrv", 0.30, 14, 7,
            ScoringRule(bands=_ladder(
                (100, None, 100, "excellent"),
                (70, 100, 80, "good"),
                (40, 70, 60, "fair"),
                (20, 40, 35, "low"),
                (None, 20, 15, "very low"),
            )),
            display_name="Heart rate variability",
            unit="ms",
            valid_range=(5, 300),
            missing_copy="Sync HRV from a wearable",
        ),
        Driver(
            Domain.RECOVERY, "insomnia", 0.15, 30, 0,
            ScoringRule(categories={"<1": 95, "1-2": 75, "3-4": 45, "5+": 20}),
            display_name="Trouble sleeping (nights/week)",
            missing_copy="Tell us how often you struggle to sleep",
        ),
        Driver(
            Domain.RECOVERY, "sleep_regularity", 0.10, 30, 0,
            ScoringRule(categories={"true": 90, "false": 50}),
            display_name="Regular sleep schedule",
            missing_copy="Tell us whether your bedtime is consistent",
        ),
    ),
    confidence_rules=(
        ConfidenceRule(
            kind=FLOOR,
            limit=70,
            predicate=EvidencePredicate(
                source_types=frozenset({SourceType.DEVICE}),
                driver_keys=frozenset({PRIMARY_SLEEP_DRIVER}),
            ),
            message="Raised to 70%: device-tracked sleep present",
        ),
    ),
)

MIND = DomainConfig(
    domain=Domain.MIND,
    drivers=(
        Driver(
            Domain.MIND, "focus_test", 0.50, 90, 30,
            ScoringRule(anchors=((0, 0), (100, 100))),
            display_name="Focus test",
            valid_range=(0, 100),
            missing_copy="Take the 2-minute focus test",
        ),
        Driver(
            Domain.MIND, "focus_stability", 0.30, 60, 0,
            ScoringRule(categories={
                "very_unstable": 20,
                "somewhat_unstable": 45,
                "mostly_stable": 75,
                "very_stable": 95,
            }),
            display_name="Focus stability",
            missing_copy="Rate how steady your focus is",
        ),
        Driver(
            Domain.MIND, "brain_fog", 0.20, 60, 0,
            ScoringRule(categories={"rarely": 90, "sometimes": 60, "often": 25}),
            display_name="Brain fog",
            missing_copy="Tell us how often you feel foggy",
        ),
    ),
    confidence_rules=(
        ConfidenceRule(
            kind=CAP,
            limit=35,
            predicate=EvidencePredicate(source_types=frozenset({SourceType.TEST})),
            message="Capped at 35%: no focus test taken",
        ),
    ),
)


DEFAULT_REGISTRY = DriverRegistry(
    REGISTRY_REVISION,
    {
        Domain.HEART: HEART,
        Domain.FRAME: FRAME,
        Domain.METABOLISM: METABOLISM,
        Domain.RECOVERY: RECOVERY,
        Domain.MIND: MIND,
    },
)
