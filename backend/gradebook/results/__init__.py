"""Compiled results: compilation, ranking, publication and reads."""
from .router import router as class_head_router, results_router
from .service import CompilationService, PublicationService

__all__ = ["class_head_router", "results_router", "CompilationService", "PublicationService"]
