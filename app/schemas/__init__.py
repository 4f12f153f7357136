from .user import User, CurrentUser
from .tone import ToneAnalysisRequest, ToneAnalysisOutput, ToneAnalysisResponse, ToneAnalysis, ToneAnalysisTitleUpdate
from .scripts import (
    ScriptGenerationRequest, ScriptGenerationOutput, ScriptGenerationResponse,
    GeneratedScript, ScriptSelectionUpdate, RelationshipType, ResponseStyle,
)
from .voice import VoiceSynthesisRequest, VoiceStyle
from .usage import UsageSummary, FeatureUsage
from .subscription import SubscriptionInfo, CheckoutSessionResponse, PortalSessionResponse
from .library import (
    ScriptCategoryCreate, ScriptCategoryUpdate, ScriptCategory,
    PersonalScriptCreate, PersonalScriptUpdate, SaveGeneratedScript, PersonalScript, LibrarySort,
)

__all__ = [
    "User", "CurrentUser",
    "ToneAnalysisRequest", "ToneAnalysisOutput", "ToneAnalysisResponse",
    "ToneAnalysis", "ToneAnalysisTitleUpdate",
    "ScriptGenerationRequest", "ScriptGenerationOutput", "ScriptGenerationResponse",
    "GeneratedScript", "ScriptSelectionUpdate", "RelationshipType", "ResponseStyle",
    "VoiceSynthesisRequest", "VoiceStyle",
    "UsageSummary", "FeatureUsage",
    "SubscriptionInfo", "CheckoutSessionResponse", "PortalSessionResponse",
    "ScriptCategoryCreate", "ScriptCategoryUpdate", "ScriptCategory",
    "PersonalScriptCreate", "PersonalScriptUpdate", "SaveGeneratedScript", "PersonalScript", "LibrarySort",
]
