from pydantic import BaseModel
from typing import Optional
from enum import Enum


class VoiceStyle(str, Enum):
    professional = "professional"
    friendly = "friendly"
    clear = "clear"

class VoiceSynthesisRequest(BaseModel):
    text: Optional[str] = None
    voice: Optional[str] = VoiceStyle.professional.value
    speed: Optional[float] = 1.0
