import logging
from typing import Any, List

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy.orm import Session

from eden.api import deps
from .errors import ConfigurationError
from .repository import ScorecardRepository
from .schemas import ScorecardHistoryItem, ScorecardResponse
from .services import GenerationResult, PrimeScorecardService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/prime-scorecard", tags=["prime-scorecard"])


def get_service(db: Session = Depends(deps.get_db)) -> PrimeScorecardService:
    return PrimeScorecardService(db)


def _response(subject_id: str, result: GenerationResult) -> ScorecardResponse:
    return ScorecardResponse(
        subject_id=subject_id,
        scorecard_id=result.scorecard_id,
        is_cached=result.is_cached,
        scorecard=result.scorecard.to_dict(),
    )


@router.post("/{subject_id}/generate", response_model=ScorecardResponse)
def generate_scorecard(
    subject_id: str = Path(..., min_length=1, max_length=64),
    force: bool = Query(False, description="Skip the reuse window and always recompute"),
    svc: PrimeScorecardService = Depends(get_service),
    _: Any = Depends(deps.verify_api_key_dependency),
):
    try:
        result = svc.generate(subject_id, force=force)
    except ConfigurationError as e:
        logger.error(f"Scoring configuration invalid: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Scoring configuration is invalid",
        )
    return _response(subject_id, result)


@router.get("/{subject_id}/latest", response_model=ScorecardResponse)
def get_latest_scorecard(
    subject_id: str = Path(..., min_length=1, max_length=64),
    svc: PrimeScorecardService = Depends(get_service),
    _: Any = Depends(deps.verify_api_key_dependency),
):
    result = svc.latest(subject_id)
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No scorecard for subject")
    return _response(subject_id, result)


@router.get("/{subject_id}/history", response_model=List[ScorecardHistoryItem])
def get_scorecard_history(
    subject_id: str = Path(..., min_length=1, max_length=64),
    limit: int = Query(20, ge=1, le=100),
    svc: PrimeScorecardService = Depends(get_service),
    _: Any = Depends(deps.verify_api_key_dependency),
):
    return [
        ScorecardHistoryItem(
            scorecard_id=r.id,
            generated_at=ScorecardRepository.generated_at(r),
            scoring_revision=r.scoring_revision,
            prime_score=r.prime_score,
            prime_confidence=r.prime_confidence,
        )
        for r in svc.history(subject_id, limit=limit)
    ]
