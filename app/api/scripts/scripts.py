from fastapi import APIRouter, Depends, HTTPException, status, Query, Request
from sqlalchemy.orm import Session
from typing import List
from app.core.database import get_db
from app.core.config import settings
from app.api.auth.auth import get_current_user
from app.models.user import User
from app.schemas.scripts import (
    ScriptGenerationRequest, ScriptGenerationResponse, GeneratedScript, ScriptSelectionUpdate
)
from app.services.script_generation_service import ScriptGenerationService
from app.services.history_service import HistoryService, DEFAULT_HISTORY_LIMIT, MAX_HISTORY_LIMIT
from app.services.providers import TextGenerationProvider, get_text_provider
from app.middleware.rate_limit import limiter
from app.utils.id_utils import is_valid_nanoid

router = APIRouter()

@router.post("/generate", response_model=ScriptGenerationResponse)
@limiter.limit(settings.ACTION_RATE_LIMIT)
async def generate_scripts(
    request: Request,
    payload: ScriptGenerationRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    provider: TextGenerationProvider = Depends(get_text_provider)
):
    """Generate casual, professional and direct replies for a situation"""
    service = ScriptGenerationService(db, provider)
    result = await service.execute(current_user, payload)
    return ScriptGenerationResponse(
        id=result.record_id,
        processing_time_ms=result.processing_time_ms,
        responses=result.output.responses
    )

@router.get("/history", response_model=List[GeneratedScript])
@limiter.limit(settings.HISTORY_RATE_LIMIT)
async def get_script_history(
    request: Request,
    limit: int = Query(DEFAULT_HISTORY_LIMIT, ge=1, le=MAX_HISTORY_LIMIT),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return HistoryService(db).get_generated_scripts(current_user.id, limit=limit)

@router.patch("/history/{script_id}/selection", response_model=GeneratedScript)
@limiter.limit(settings.HISTORY_RATE_LIMIT)
async def select_script_response(
    request: Request,
    script_id: str,
    update: ScriptSelectionUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    script = None
    if is_valid_nanoid(script_id):
        script = HistoryService(db).select_script_response(script_id, current_user.id, update.selected_response)

    if not script:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Generated script not found"
        )
    return script
