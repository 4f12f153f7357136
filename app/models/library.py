from sqlalchemy import Column, String, Text, Integer, DateTime, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base
from app.utils.id_utils import generate_id

DEFAULT_CATEGORY_COLOR = "#3B82F6"

class ScriptCategory(Base):
    __tablename__ = "script_categories"
    __table_args__ = (UniqueConstraint("user_id", "name", name="uq_script_categories_user_name"),)

    id = Column(String, primary_key=True, default=generate_id)
    user_id = Column(String, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    name = Column(String, nullable=False)
    color = Column(String, nullable=False, default=DEFAULT_CATEGORY_COLOR)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", back_populates="script_categories")
    scripts = relationship("PersonalScript", back_populates="category")

    def __repr__(self):
        return f"<ScriptCategory(id={self.id}, name={self.name}, user_id={self.user_id})>"

class PersonalScript(Base):
    __tablename__ = "personal_scripts"

    id = Column(String, primary_key=True, default=generate_id)
    user_id = Column(String, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    category_id = Column(String, ForeignKey('script_categories.id', ondelete='SET NULL'), nullable=True, index=True)
    source_generation_id = Column(String, ForeignKey('generated_scripts.id', ondelete='SET NULL'), nullable=True)
    title = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    tags = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False, default=list)
    usage_count = Column(Integer, nullable=False, default=0)
    last_used_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", back_populates="personal_scripts")
    category = relationship("ScriptCategory", back_populates="scripts")

    def __repr__(self):
        return f"<PersonalScript(id={self.id}, title={self.title}, user_id={self.user_id})>"
