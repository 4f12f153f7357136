from sqlalchemy.orm import Session
from typing import List, Optional
from app.models.tone_analysis import ToneAnalysis
from app.models.generated_script import GeneratedScript
from app.schemas.scripts import ResponseStyle
import logging

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50
MAX_HISTORY_LIMIT = 100


class HistoryService:
    """Read and edit a user's saved tone analyses and generated scripts"""

    def __init__(self, db: Session):
        self.db = db

    def get_tone_analyses(self, user_id: str, limit: int = DEFAULT_HISTORY_LIMIT) -> List[ToneAnalysis]:
        return (
            self.db.query(ToneAnalysis)
            .filter(ToneAnalysis.user_id == user_id)
            .order_by(ToneAnalysis.created_at.desc())
            .limit(min(limit, MAX_HISTORY_LIMIT))
            .all()
        )

    def get_tone_analysis(self, analysis_id: str, user_id: str) -> Optional[ToneAnalysis]:
        return self.db.query(ToneAnalysis).filter(
            ToneAnalysis.id == analysis_id,
            ToneAnalysis.user_id == user_id
        ).first()

    def update_tone_analysis_title(self, analysis_id: str, user_id: str, title: str) -> Optional[ToneAnalysis]:
        analysis = self.get_tone_analysis(analysis_id, user_id)
        if not analysis:
            return None

        analysis.title = title.strip()
        self.db.commit()
        self.db.refresh(analysis)
        return analysis

    def delete_tone_analysis(self, analysis_id: str, user_id: str) -> bool:
        """Delete an analysis. Usage already counted for it is not refunded."""
        analysis = self.get_tone_analysis(analysis_id, user_id)
        if not analysis:
            return False

        self.db.delete(analysis)
        self.db.commit()
        logger.info(f"Deleted tone analysis {analysis_id} for user {user_id}")
        return True

    def get_generated_scripts(self, user_id: str, limit: int = DEFAULT_HISTORY_LIMIT) -> List[GeneratedScript]:
        return (
            self.db.query(GeneratedScript)
            .filter(GeneratedScript.user_id == user_id)
            .order_by(GeneratedScript.created_at.desc())
            .limit(min(limit, MAX_HISTORY_LIMIT))
            .all()
        )

    def select_script_response(
        self,
        script_id: str,
        user_id: str,
        selected: ResponseStyle
    ) -> Optional[GeneratedScript]:
        script = self.db.query(GeneratedScript).filter(
            GeneratedScript.id == script_id,
            GeneratedScript.user_id == user_id
        ).first()
        if not script:
            return None

        script.selected_response = selected.value
        self.db.commit()
        self.db.refresh(script)
        return script
