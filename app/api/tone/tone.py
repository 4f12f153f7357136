from fastapi import APIRouter, Depends, HTTPException, status, Query, Request
from sqlalchemy.orm import Session
from typing import List
from app.core.database import get_db
from app.core.config import settings
from app.api.auth.auth import get_current_user
from app.models.user import User
from app.schemas.tone import (
    ToneAnalysisRequest, ToneAnalysisResponse, ToneAnalysis, ToneAnalysisTitleUpdate
)
from app.services.tone_analysis_service import ToneAnalysisService
from app.services.history_service import HistoryService, DEFAULT_HISTORY_LIMIT, MAX_HISTORY_LIMIT
from app.services.providers import TextGenerationProvider, get_text_provider
from app.middleware.rate_limit import limiter
from app.utils.id_utils import is_valid_nanoid

router = APIRouter()

def _analysis_not_found() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Tone analysis not found"
    )

@router.post("/analyze", response_model=ToneAnalysisResponse)
@limiter.limit(settings.ACTION_RATE_LIMIT)
async def analyze_tone(
    request: Request,
    payload: ToneAnalysisRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    provider: TextGenerationProvider = Depends(get_text_provider)
):
    """Analyze the tone of a message. Counts toward the daily tone analysis limit."""
    service = ToneAnalysisService(db, provider)
    result = await service.execute(current_user, payload)
    return ToneAnalysisResponse(
        id=result.record_id,
        processing_time_ms=result.processing_time_ms,
        **result.output.model_dump()
    )

@router.get("/history", response_model=List[ToneAnalysis])
@limiter.limit(settings.HISTORY_RATE_LIMIT)
async def get_tone_history(
    request: Request,
    limit: int = Query(DEFAULT_HISTORY_LIMIT, ge=1, le=MAX_HISTORY_LIMIT),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return HistoryService(db).get_tone_analyses(current_user.id, limit=limit)

@router.patch("/history/{analysis_id}", response_model=ToneAnalysis)
@limiter.limit(settings.HISTORY_RATE_LIMIT)
async def update_tone_analysis_title(
    request: Request,
    analysis_id: str,
    update: ToneAnalysisTitleUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    if not is_valid_nanoid(analysis_id):
        raise _analysis_not_found()

    analysis = HistoryService(db).update_tone_analysis_title(analysis_id, current_user.id, update.title)
    if not analysis:
        raise _analysis_not_found()
    return analysis

@router.delete("/history/{analysis_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit(settings.HISTORY_RATE_LIMIT)
async def delete_tone_analysis(
    request: Request,
    analysis_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    if not is_valid_nanoid(analysis_id) or not HistoryService(db).delete_tone_analysis(analysis_id, current_user.id):
        raise _analysis_not_found()
