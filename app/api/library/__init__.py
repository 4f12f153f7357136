from .library import router as library_router

__all__ = ["library_router"]
