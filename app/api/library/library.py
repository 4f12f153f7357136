from fastapi import APIRouter, Depends, HTTPException, status, Query, Request
from sqlalchemy.orm import Session
from typing import List, Optional
from app.core.database import get_db
from app.core.config import settings
from app.api.auth.auth import get_current_user
from app.models.user import User
from app.schemas.library import (
    LibrarySort,
    PersonalScript,
    PersonalScriptCreate,
    PersonalScriptUpdate,
    SaveGeneratedScript,
    ScriptCategory,
    ScriptCategoryCreate,
    ScriptCategoryUpdate,
)
from app.services.library_service import LibraryService, DEFAULT_LIBRARY_LIMIT, MAX_LIBRARY_LIMIT
from app.middleware.rate_limit import limiter
from app.utils.id_utils import is_valid_nanoid

router = APIRouter()

def _not_found(what: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"{what} not found"
    )

@router.get("/categories", response_model=List[ScriptCategory])
@limiter.limit(settings.HISTORY_RATE_LIMIT)
async def get_categories(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get the current user's script categories, by name."""
    return LibraryService(db).get_categories(current_user.id)

@router.post("/categories", response_model=ScriptCategory, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.DEFAULT_RATE_LIMIT)
async def create_category(
    request: Request,
    category_data: ScriptCategoryCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return LibraryService(db).create_category(category_data, current_user.id)

@router.patch("/categories/{category_id}", response_model=ScriptCategory)
@limiter.limit(settings.DEFAULT_RATE_LIMIT)
async def update_category(
    request: Request,
    category_id: str,
    category_data: ScriptCategoryUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Rename or recolor a category."""
    category = None
    if is_valid_nanoid(category_id):
        category = LibraryService(db).update_category(category_id, category_data, current_user.id)

    if not category:
        raise _not_found("Category")
    return category

@router.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit(settings.DEFAULT_RATE_LIMIT)
async def delete_category(
    request: Request,
    category_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete a category. Its scripts are kept without a category."""
    if not is_valid_nanoid(category_id) or not LibraryService(db).delete_category(category_id, current_user.id):
        raise _not_found("Category")

@router.get("/scripts", response_model=List[PersonalScript])
@limiter.limit(settings.HISTORY_RATE_LIMIT)
async def get_scripts(
    request: Request,
    search: Optional[str] = Query(None, max_length=200, description="Matches title, content or tags"),
    category_id: Optional[str] = Query(None),
    tag: List[str] = Query([], description="Repeat to match any of several tags"),
    sort: LibrarySort = Query(LibrarySort.recent),
    skip: int = Query(0, ge=0),
    limit: int = Query(DEFAULT_LIBRARY_LIMIT, ge=1, le=MAX_LIBRARY_LIMIT),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get the current user's saved scripts, filtered and sorted."""
    return LibraryService(db).get_scripts(
        current_user.id,
        search=search,
        category_id=category_id,
        tags=tag,
        sort=sort,
        skip=skip,
        limit=limit
    )

@router.post("/scripts", response_model=PersonalScript, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.DEFAULT_RATE_LIMIT)
async def create_script(
    request: Request,
    script_data: PersonalScriptCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return LibraryService(db).create_script(script_data, current_user.id)

@router.post("/scripts/from-generation", response_model=PersonalScript, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.DEFAULT_RATE_LIMIT)
async def save_generated_script(
    request: Request,
    save_data: SaveGeneratedScript,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Save one response from a script generation. Does not count as a generation."""
    if not is_valid_nanoid(save_data.generation_id):
        raise _not_found("Generated script")
    return LibraryService(db).save_generated_script(save_data, current_user.id)

@router.patch("/scripts/{script_id}", response_model=PersonalScript)
@limiter.limit(settings.DEFAULT_RATE_LIMIT)
async def update_script(
    request: Request,
    script_id: str,
    script_data: PersonalScriptUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    script = None
    if is_valid_nanoid(script_id):
        script = LibraryService(db).update_script(script_id, script_data, current_user.id)

    if not script:
        raise _not_found("Script")
    return script

@router.delete("/scripts/{script_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit(settings.DEFAULT_RATE_LIMIT)
async def delete_script(
    request: Request,
    script_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    if not is_valid_nanoid(script_id) or not LibraryService(db).delete_script(script_id, current_user.id):
        raise _not_found("Script")

@router.post("/scripts/{script_id}/use", response_model=PersonalScript)
@limiter.limit(settings.DEFAULT_RATE_LIMIT)
async def record_script_use(
    request: Request,
    script_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Count a use of a saved script, e.g. when it is copied."""
    script = None
    if is_valid_nanoid(script_id):
        script = LibraryService(db).record_script_use(script_id, current_user.id)

    if not script:
        raise _not_found("Script")
    return script
