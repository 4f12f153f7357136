from .text_generation import TextGenerationProvider, get_text_provider
from .speech_synthesis import SpeechSynthesisProvider, get_speech_provider, VOICE_IDS

__all__ = [
    "TextGenerationProvider", "get_text_provider",
    "SpeechSynthesisProvider", "get_speech_provider", "VOICE_IDS",
]
