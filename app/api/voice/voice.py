from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session
from app.core.database import get_db
from app.core.config import settings
from app.api.auth.auth import get_current_user
from app.models.user import User
from app.schemas.voice import VoiceSynthesisRequest
from app.services.voice_synthesis_service import VoiceSynthesisService
from app.services.providers import SpeechSynthesisProvider, get_speech_provider
from app.middleware.rate_limit import limiter

router = APIRouter()

@router.post(
    "/synthesize",
    response_class=Response,
    responses={200: {"content": {"audio/mpeg": {}}}}
)
@limiter.limit(settings.ACTION_RATE_LIMIT)
async def synthesize_voice(
    request: Request,
    payload: VoiceSynthesisRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    provider: SpeechSynthesisProvider = Depends(get_speech_provider)
):
    """Synthesize practice audio. Premium only, counts toward the monthly voice limit."""
    service = VoiceSynthesisService(db, provider)
    result = await service.execute(current_user, payload)
    return Response(
        content=result.output,
        media_type="audio/mpeg",
        headers={
            "X-Processing-Time-Ms": str(result.processing_time_ms),
        }
    )
