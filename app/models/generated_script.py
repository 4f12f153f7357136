from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base
from app.utils.id_utils import generate_id

class GeneratedScript(Base):
    __tablename__ = "generated_scripts"

    id = Column(String, primary_key=True, default=generate_id)
    user_id = Column(String, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    situation_context = Column(Text, nullable=False)
    relationship_type = Column(String, nullable=False)
    responses = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False)
    selected_response = Column(String)  # casual, professional or direct
    saved_to_library = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    user = relationship("User", back_populates="generated_scripts")
