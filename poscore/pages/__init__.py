from .routes import pages_router

__all__ = ["pages_router"]
