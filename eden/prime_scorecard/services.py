from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from eden.core.config import settings
from eden.utils.timezone import utc_now

from .assembler import generate_or_reuse
from .defaults import DEFAULT_REGISTRY
from .models import ScorecardRecord
from .registry import DEFAULT_SOURCE_QUALITY, DriverRegistry, SourceQualityTable
from .repository import EvidenceRepository, ScorecardRepository
from .types import Scorecard

logger = logging.getLogger(__name__)


@dataclass
class GenerationResult:
    scorecard_id: Optional[int]
    scorecard: Scorecard
    is_cached: bool


class PrimeScorecardService:
    def __init__(
        self,
        db: Session,
        registry: DriverRegistry = DEFAULT_REGISTRY,
        source_quality: SourceQualityTable = DEFAULT_SOURCE_QUALITY,
        scoring_revision: Optional[str] = None,
        reuse_window_seconds: Optional[int] = None,
        min_scored_domains: Optional[int] = None,
    ):
        self.db = db
        self.registry = registry
        self.source_quality = source_quality
        self.scoring_revision = scoring_revision or settings.SCORING_REVISION
        self.reuse_window_seconds = (
            reuse_window_seconds if reuse_window_seconds is not None else settings.SCORECARD_REUSE_WINDOW_SECONDS
        )
        self.min_scored_domains = min_scored_domains or settings.PRIME_MIN_SCORED_DOMAINS
        self.evidence = EvidenceRepository(db, registry)
        self.scorecards = ScorecardRepository(db)

    def generate(self, subject_id: str, now: Optional[datetime] = None, force: bool = False) -> GenerationResult:
        """Load evidence, reuse the latest scorecard if still current, else compute and persist a new one."""
        now = now or utc_now()
        evidence = self.evidence.load_evidence_set(subject_id)

        latest_record = None if force else self.scorecards.get_latest(subject_id)
        latest = self.scorecards.to_scorecard(latest_record) if latest_record is not None else None

        scorecard, is_cached = generate_or_reuse(
            latest,
            evidence,
            now,
            self.scoring_revision,
            driver_registry=self.registry,
            source_quality_table=self.source_quality,
            max_age_seconds=self.reuse_window_seconds,
            min_scored_domains=self.min_scored_domains,
        )
        if is_cached:
            logger.info("Reused scorecard %s for %s", latest_record.id, subject_id)
            return GenerationResult(scorecard_id=latest_record.id, scorecard=scorecard, is_cached=True)

        try:
            record = self.scorecards.save(subject_id, scorecard)
            self.scorecards.set_latest(subject_id, record.id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(
            "Generated scorecard %s for %s (prime_score=%s, metrics=%d, revision=%s)",
            record.id,
            subject_id,
            scorecard.prime_score,
            evidence.total_metrics,
            self.scoring_revision,
        )
        return GenerationResult(scorecard_id=record.id, scorecard=scorecard, is_cached=False)

    def latest(self, subject_id: str) -> Optional[GenerationResult]:
        record = self.scorecards.get_latest(subject_id)
        if record is None:
            return None
        return GenerationResult(scorecard_id=record.id, scorecard=self.scorecards.to_scorecard(record), is_cached=True)

    def history(self, subject_id: str, limit: int = 20) -> List[ScorecardRecord]:
        return self.scorecards.list_history(subject_id, limit=limit)

    def subject_ids(self) -> List[str]:
        return self.evidence.list_subject_ids()
