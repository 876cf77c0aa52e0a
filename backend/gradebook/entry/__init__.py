"""Grade entry and submission workflow."""
from .router import router as entry_router, review_router
from .service import GradeEntryService, SubmissionService

__all__ = ["entry_router", "review_router", "GradeEntryService", "SubmissionService"]
