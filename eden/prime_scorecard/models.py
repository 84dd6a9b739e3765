from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.dialects.postgresql import JSONB

from eden.db.base import Base
from eden.utils.timezone import utc_now_naive

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in development/tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class EvidenceMetric(Base):
    """One stored measurement, written by the ingestion jobs."""

    __tablename__ = "eden_metric_values"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    metric_code = Column(String(64), nullable=False)  # e.g. resting_hr, hba1c, sleep
    value_numeric = Column(Float, nullable=True)
    value_text = Column(String(128), nullable=True)  # categorical answers, "120/80"
    unit = Column(String(32), nullable=True)
    source = Column(String(32), nullable=False)  # apple_health, lab_report, photo, self_report, ...
    measured_at = Column(DateTime, nullable=True)  # UTC-naive; null = unknown age
    unable_to_estimate = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, default=utc_now_naive, nullable=False)

    __table_args__ = (
        Index("idx_eden_metric_user_code", "user_id", "metric_code"),
    )


class ScorecardRecord(Base):
    """Append-only scorecard history."""

    __tablename__ = "eden_user_scorecards"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    generated_at = Column(DateTime, nullable=False)
    scoring_revision = Column(String(64), nullable=False)
    prime_score = Column(Float, nullable=True)
    prime_confidence = Column(Float, nullable=False)
    evidence_freshest_at = Column(DateTime, nullable=True)
    total_metrics = Column(Integer, nullable=False, default=0)
    scorecard_json = Column(JSONType, nullable=False)

    created_at = Column(DateTime, default=utc_now_naive, nullable=False)

    __table_args__ = (
        Index("idx_eden_scorecards_user_generated", "user_id", "generated_at"),
    )


class SubjectScorecardState(Base):
    """Latest-scorecard pointer per subject."""

    __tablename__ = "eden_user_state"

    user_id = Column(String(64), primary_key=True)
    latest_scorecard_id = Column(Integer, ForeignKey("eden_user_scorecards.id", ondelete="SET NULL"), nullable=True)

    updated_at = Column(DateTime, default=utc_now_naive, onupdate=utc_now_naive, nullable=False)
