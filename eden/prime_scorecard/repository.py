"""Persistence adapters around the pure engine.

EvidenceRepository loads an EvidenceSet from stored metric rows.
ScorecardRepository stores scorecards and the per-subject latest pointer.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from eden.utils.timezone import to_utc_aware, to_utc_naive, utc_now_naive

from .defaults import DEFAULT_REGISTRY
from .mappings import driver_key_for, raw_value, source_type_for
from .models import EvidenceMetric, ScorecardRecord, SubjectScorecardState
from .registry import DriverRegistry
from .types import EvidenceItem, EvidenceSet, Scorecard

logger = logging.getLogger(__name__)


class EvidenceRepository:
    def __init__(self, db: Session, registry: DriverRegistry = DEFAULT_REGISTRY):
        self.db = db
        self.registry = registry

    def load_evidence_set(self, subject_id: str) -> EvidenceSet:
        rows = (
            self.db.query(EvidenceMetric)
            .filter(EvidenceMetric.user_id == subject_id)
            .order_by(EvidenceMetric.id)
            .all()
        )
        items: List[EvidenceItem] = []
        for row in rows:
            driver_key = driver_key_for(row.metric_code)
            driver = self.registry.driver(driver_key) if driver_key else None
            if driver is None:
                logger.debug("Skipping unmapped metric %s for %s", row.metric_code, subject_id)
                continue
            source_type = source_type_for(row.source)
            if source_type is None:
                logger.debug("Skipping metric %s with unknown source %s", row.metric_code, row.source)
                continue
            items.append(
                EvidenceItem(
                    domain=driver.domain,
                    driver_key=driver.driver_key,
                    value=raw_value(driver.driver_key, row.value_numeric, row.value_text, bool(row.unable_to_estimate)),
                    source_type=source_type,
                    measured_at=row.measured_at,
                    unit=row.unit,
                    metadata={"metric_id": row.id, "metric_code": row.metric_code},
                )
            )
        return EvidenceSet(items=tuple(items), subject_id=subject_id)

    def list_subject_ids(self) -> List[str]:
        rows = self.db.query(EvidenceMetric.user_id).distinct().order_by(EvidenceMetric.user_id).all()
        return [r[0] for r in rows]


class ScorecardRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_latest(self, subject_id: str) -> Optional[ScorecardRecord]:
        state = self.db.query(SubjectScorecardState).filter(SubjectScorecardState.user_id == subject_id).first()
        if state and state.latest_scorecard_id:
            record = self.db.get(ScorecardRecord, state.latest_scorecard_id)
            if record is not None:
                return record
        record = (
            self.db.query(ScorecardRecord)
            .filter(ScorecardRecord.user_id == subject_id)
            .order_by(desc(ScorecardRecord.generated_at), desc(ScorecardRecord.id))
            .first()
        )
        if record is not None:
            logger.warning("Latest pointer missing for %s, falling back to scorecard %s", subject_id, record.id)
        return record

    def set_latest(self, subject_id: str, scorecard_id: int) -> None:
        state = self.db.query(SubjectScorecardState).filter(SubjectScorecardState.user_id == subject_id).first()
        if state is None:
            state = SubjectScorecardState(user_id=subject_id)
            self.db.add(state)
        state.latest_scorecard_id = scorecard_id
        state.updated_at = utc_now_naive()
        self.db.flush()

    def save(self, subject_id: str, scorecard: Scorecard) -> ScorecardRecord:
        record = ScorecardRecord(
            user_id=subject_id,
            generated_at=to_utc_naive(scorecard.generated_at),
            scoring_revision=scorecard.scoring_revision,
            prime_score=scorecard.prime_score,
            prime_confidence=scorecard.prime_confidence,
            evidence_freshest_at=to_utc_naive(scorecard.evidence_summary.freshest_measured_at),
            total_metrics=scorecard.evidence_summary.total_metrics,
            scorecard_json=scorecard.to_dict(),
        )
        self.db.add(record)
        self.db.flush()
        return record

    def list_history(self, subject_id: str, limit: int = 20) -> List[ScorecardRecord]:
        return (
            self.db.query(ScorecardRecord)
            .filter(ScorecardRecord.user_id == subject_id)
            .order_by(desc(ScorecardRecord.generated_at), desc(ScorecardRecord.id))
            .limit(limit)
            .all()
        )

    @staticmethod
    def to_scorecard(record: ScorecardRecord) -> Scorecard:
        return Scorecard.from_dict(record.scorecard_json)

    @staticmethod
    def generated_at(record: ScorecardRecord):
        return to_utc_aware(record.generated_at)
