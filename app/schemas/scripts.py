from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import datetime
from enum import Enum


class RelationshipType(str, Enum):
    colleague = "colleague"
    manager = "manager"
    friend = "friend"
    family = "family"
    client = "client"
    acquaintance = "acquaintance"
    other = "other"

class ResponseStyle(str, Enum):
    casual = "casual"
    professional = "professional"
    direct = "direct"

class ScriptGenerationRequest(BaseModel):
    situation_context: Optional[str] = None
    relationship_type: Optional[str] = None

class ScriptOption(BaseModel):
    content: str = Field(..., min_length=1)
    explanation: str = Field(..., min_length=1)
    confidence: float = Field(..., ge=0.0, le=1.0)

class ScriptResponses(BaseModel):
    casual: ScriptOption
    professional: ScriptOption
    direct: ScriptOption

class ScriptGenerationOutput(BaseModel):
    """Shape the text-generation provider must return for script generation"""
    responses: ScriptResponses

class ScriptGenerationResponse(ScriptGenerationOutput):
    id: str
    processing_time_ms: int

class ScriptSelectionUpdate(BaseModel):
    selected_response: ResponseStyle

class GeneratedScript(BaseModel):
    id: str
    situation_context: str
    relationship_type: str
    responses: Dict[str, Any]
    selected_response: Optional[str] = None
    saved_to_library: bool = False
    created_at: datetime

    model_config = {"from_attributes": True}
