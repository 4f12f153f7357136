from .tone import router as tone_router

__all__ = ["tone_router"]
