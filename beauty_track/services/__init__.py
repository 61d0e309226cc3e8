"""Services layer - ビジネスロジック"""

from beauty_track.services.guest_migration import GuestMigrationService
from beauty_track.services.hosted_record_store import HostedRecordStore
from beauty_track.services.journal import JournalService
from beauty_track.services.session import SessionService, SignInResult

__all__ = [
    "HostedRecordStore",
    "GuestMigrationService",
    "SessionService",
    "SignInResult",
    "JournalService",
]
