from .voice import router as voice_router

__all__ = ["voice_router"]
