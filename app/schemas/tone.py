from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime


class ToneAnalysisRequest(BaseModel):
    # Checked by the service so the error carries a literal user message
    text: Optional[str] = None

class ToneScores(BaseModel):
    professional: float = Field(..., ge=0)
    friendly: float = Field(..., ge=0)
    urgent: float = Field(..., ge=0)
    neutral: float = Field(..., ge=0)

class ToneAnalysisOutput(BaseModel):
    """Shape the text-generation provider must return for a tone analysis"""
    tones: ToneScores
    confidence: float = Field(..., ge=0.0, le=1.0)
    explanation: str = Field(..., min_length=1)
    suggestions: List[str] = Field(..., min_length=1)

class ToneAnalysisResponse(ToneAnalysisOutput):
    id: str
    processing_time_ms: int

class ToneAnalysisTitleUpdate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)

class ToneAnalysis(BaseModel):
    id: str
    input_text: str
    analysis_result: Dict[str, Any]
    confidence_score: Optional[float] = None
    processing_time_ms: Optional[int] = None
    title: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}
