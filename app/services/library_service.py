from sqlalchemy import func
from sqlalchemy.orm import Session
from typing import List, Optional
from fastapi import HTTPException, status
from app.models.library import PersonalScript, ScriptCategory
from app.models.generated_script import GeneratedScript
from app.schemas.library import (
    LibrarySort,
    PersonalScriptCreate,
    PersonalScriptUpdate,
    SaveGeneratedScript,
    ScriptCategoryCreate,
    ScriptCategoryUpdate,
)
from app.utils.time_utils import utcnow
import logging

logger = logging.getLogger(__name__)

DEFAULT_LIBRARY_LIMIT = 50
MAX_LIBRARY_LIMIT = 100

SORT_ORDER = {
    LibrarySort.recent: (PersonalScript.created_at.desc(), PersonalScript.id),
    LibrarySort.popular: (PersonalScript.usage_count.desc(), PersonalScript.created_at.desc()),
    LibrarySort.alphabetical: (func.lower(PersonalScript.title), PersonalScript.created_at.desc()),
}


def _matches(script: PersonalScript, search: Optional[str], tags: Optional[List[str]]) -> bool:
    """Case-insensitive substring match on title, content and tags; any one listed tag is enough"""
    script_tags = [tag.lower() for tag in (script.tags or [])]

    if search:
        query = search.lower()
        if (query not in script.title.lower()
                and query not in script.content.lower()
                and not any(query in tag for tag in script_tags)):
            return False

    if tags:
        wanted = [tag.lower() for tag in tags if tag.strip()]
        if wanted and not any(w in tag for w in wanted for tag in script_tags):
            return False

    return True


class LibraryService:
    """A user's saved scripts and the categories they file them under"""

    def __init__(self, db: Session):
        self.db = db

    # Categories

    def get_categories(self, user_id: str) -> List[ScriptCategory]:
        return (
            self.db.query(ScriptCategory)
            .filter(ScriptCategory.user_id == user_id)
            .order_by(ScriptCategory.name)
            .all()
        )

    def get_category(self, category_id: str, user_id: str) -> Optional[ScriptCategory]:
        return self.db.query(ScriptCategory).filter(
            ScriptCategory.id == category_id,
            ScriptCategory.user_id == user_id
        ).first()

    def _check_name_free(self, name: str, user_id: str, exclude_id: Optional[str] = None):
        query = self.db.query(ScriptCategory).filter(
            ScriptCategory.user_id == user_id,
            ScriptCategory.name == name
        )
        if exclude_id:
            query = query.filter(ScriptCategory.id != exclude_id)

        if query.first():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Category with name '{name}' already exists"
            )

    def create_category(self, category_data: ScriptCategoryCreate, user_id: str) -> ScriptCategory:
        self._check_name_free(category_data.name, user_id)

        category = ScriptCategory(
            user_id=user_id,
            name=category_data.name,
            color=category_data.color
        )
        self.db.add(category)
        self.db.commit()
        self.db.refresh(category)
        return category

    def update_category(
        self,
        category_id: str,
        category_data: ScriptCategoryUpdate,
        user_id: str
    ) -> Optional[ScriptCategory]:
        category = self.get_category(category_id, user_id)
        if not category:
            return None

        if category_data.name and category_data.name != category.name:
            self._check_name_free(category_data.name, user_id, exclude_id=category_id)

        update_data = category_data.model_dump(exclude_unset=True, exclude_none=True)
        for field, value in update_data.items():
            setattr(category, field, value)

        self.db.commit()
        self.db.refresh(category)
        return category

    def delete_category(self, category_id: str, user_id: str) -> bool:
        """Delete a category. Its scripts stay in the library, uncategorized."""
        category = self.get_category(category_id, user_id)
        if not category:
            return False

        self.db.query(PersonalScript).filter(
            PersonalScript.category_id == category_id
        ).update({PersonalScript.category_id: None}, synchronize_session=False)
        self.db.delete(category)
        self.db.commit()
        logger.info(f"Deleted script category {category_id} for user {user_id}")
        return True

    def _require_category(self, category_id: Optional[str], user_id: str):
        if category_id and not self.get_category(category_id, user_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Category not found"
            )

    # Scripts

    def get_scripts(
        self,
        user_id: str,
        search: Optional[str] = None,
        category_id: Optional[str] = None,
        tags: Optional[List[str]] = None,
        sort: LibrarySort = LibrarySort.recent,
        skip: int = 0,
        limit: int = DEFAULT_LIBRARY_LIMIT
    ) -> List[PersonalScript]:
        query = self.db.query(PersonalScript).filter(PersonalScript.user_id == user_id)
        if category_id:
            query = query.filter(PersonalScript.category_id == category_id)

        # Text and tag matching covers the JSON tag list, so it runs here for every dialect
        scripts = [s for s in query.order_by(*SORT_ORDER[sort]).all() if _matches(s, search, tags)]
        return scripts[skip:skip + min(limit, MAX_LIBRARY_LIMIT)]

    def get_script(self, script_id: str, user_id: str) -> Optional[PersonalScript]:
        return self.db.query(PersonalScript).filter(
            PersonalScript.id == script_id,
            PersonalScript.user_id == user_id
        ).first()

    def create_script(self, script_data: PersonalScriptCreate, user_id: str) -> PersonalScript:
        self._require_category(script_data.category_id, user_id)

        script = PersonalScript(
            user_id=user_id,
            title=script_data.title.strip(),
            content=script_data.content,
            category_id=script_data.category_id,
            tags=script_data.tags,
        )
        self.db.add(script)
        self.db.commit()
        self.db.refresh(script)
        return script

    def save_generated_script(self, save_data: SaveGeneratedScript, user_id: str) -> PersonalScript:
        """Copy the chosen generated response into the library and mark the generation as saved"""
        generation = self.db.query(GeneratedScript).filter(
            GeneratedScript.id == save_data.generation_id,
            GeneratedScript.user_id == user_id
        ).first()
        if not generation:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Generated script not found"
            )
        self._require_category(save_data.category_id, user_id)

        style = save_data.selected_response.value
        content = ((generation.responses or {}).get(style) or {}).get("content")
        if not content:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Generated script has no {style} response"
            )

        generation.selected_response = style
        generation.saved_to_library = True

        script = PersonalScript(
            user_id=user_id,
            title=save_data.title.strip(),
            content=content,
            category_id=save_data.category_id,
            tags=save_data.tags,
            source_generation_id=generation.id,
        )
        self.db.add(script)
        self.db.commit()
        self.db.refresh(script)
        logger.info(f"Saved {style} response of generation {generation.id} to library for user {user_id}")
        return script

    def update_script(
        self,
        script_id: str,
        script_data: PersonalScriptUpdate,
        user_id: str
    ) -> Optional[PersonalScript]:
        script = self.get_script(script_id, user_id)
        if not script:
            return None

        update_data = script_data.model_dump(exclude_unset=True)
        if update_data.get("category_id"):
            self._require_category(update_data["category_id"], user_id)

        for field, value in update_data.items():
            # Only the category may be cleared
            if value is None and field != "category_id":
                continue
            setattr(script, field, value.strip() if field == "title" else value)

        self.db.commit()
        self.db.refresh(script)
        return script

    def delete_script(self, script_id: str, user_id: str) -> bool:
        script = self.get_script(script_id, user_id)
        if not script:
            return False

        self.db.delete(script)
        self.db.commit()
        return True

    def record_script_use(self, script_id: str, user_id: str) -> Optional[PersonalScript]:
        """Count one use of a saved script, in a single UPDATE"""
        updated = self.db.query(PersonalScript).filter(
            PersonalScript.id == script_id,
            PersonalScript.user_id == user_id
        ).update(
            {
                PersonalScript.usage_count: PersonalScript.usage_count + 1,
                PersonalScript.last_used_at: utcnow(),
            },
            synchronize_session=False
        )
        self.db.commit()
        if not updated:
            return None
        return self.get_script(script_id, user_id)
