from .scripts import router as scripts_router

__all__ = ["scripts_router"]
