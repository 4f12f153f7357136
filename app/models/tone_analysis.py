from sqlalchemy import Column, String, Text, Integer, Float, DateTime, ForeignKey, JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base
from app.utils.id_utils import generate_id

class ToneAnalysis(Base):
    __tablename__ = "tone_analyses"

    id = Column(String, primary_key=True, default=generate_id)
    user_id = Column(String, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    input_text = Column(Text, nullable=False)
    analysis_result = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False)
    confidence_score = Column(Float)
    processing_time_ms = Column(Integer)
    title = Column(String)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    user = relationship("User", back_populates="tone_analyses")
