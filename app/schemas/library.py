from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional, List
from enum import Enum
from app.schemas.scripts import ResponseStyle

MAX_TAGS = 10
MAX_TAG_LENGTH = 30
COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


def _clean_tags(tags: Optional[List[str]]) -> Optional[List[str]]:
    """Trim, drop blanks and duplicates (case-insensitive), keep first-seen order"""
    if tags is None:
        return None
    cleaned, seen = [], set()
    for tag in tags:
        tag = tag.strip()
        if tag and tag.lower() not in seen:
            if len(tag) > MAX_TAG_LENGTH:
                raise ValueError(f"Tags can be at most {MAX_TAG_LENGTH} characters")
            seen.add(tag.lower())
            cleaned.append(tag)
    if len(cleaned) > MAX_TAGS:
        raise ValueError(f"A script can have at most {MAX_TAGS} tags")
    return cleaned


class LibrarySort(str, Enum):
    recent = "recent"
    popular = "popular"
    alphabetical = "alphabetical"

class ScriptCategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    color: str = Field("#3B82F6", pattern=COLOR_PATTERN)

    @field_validator('name')
    @classmethod
    def strip_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Category name cannot be blank")
        return v

class ScriptCategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    color: Optional[str] = Field(None, pattern=COLOR_PATTERN)

    @field_validator('name')
    @classmethod
    def strip_name(cls, v):
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Category name cannot be blank")
        return v

class ScriptCategory(BaseModel):
    id: str
    name: str
    color: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

class PersonalScriptCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1, max_length=5000)
    category_id: Optional[str] = None
    tags: List[str] = Field(default_factory=list)

    @field_validator('tags')
    @classmethod
    def clean_tags(cls, v):
        return _clean_tags(v)

class SaveGeneratedScript(BaseModel):
    """Keep one of the three generated responses in the library"""
    generation_id: str
    selected_response: ResponseStyle
    title: str = Field(..., min_length=1, max_length=200)
    category_id: Optional[str] = None
    tags: List[str] = Field(default_factory=list)

    @field_validator('tags')
    @classmethod
    def clean_tags(cls, v):
        return _clean_tags(v)

class PersonalScriptUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    content: Optional[str] = Field(None, min_length=1, max_length=5000)
    category_id: Optional[str] = None
    tags: Optional[List[str]] = None

    @field_validator('tags')
    @classmethod
    def clean_tags(cls, v):
        return _clean_tags(v)

class PersonalScript(BaseModel):
    id: str
    title: str
    content: str
    category_id: Optional[str] = None
    source_generation_id: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    usage_count: int
    last_used_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
