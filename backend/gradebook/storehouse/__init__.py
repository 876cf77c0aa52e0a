"""Store-house archive of rosters and transcripts."""
from .router import router as storehouse_router, roster_router
from .service import ArchiveService

__all__ = ["storehouse_router", "roster_router", "ArchiveService"]
