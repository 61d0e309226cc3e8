"""Domain layer - 外部SDKに依存しないドメインモデルとインターフェース定義"""

from beauty_track.domain.errors import (
    AuthError,
    BeautyTrackError,
    NotAuthenticatedError,
    NotFoundError,
    StorageReadError,
    StorageWriteError,
    UploadError,
    ValidationError,
    WriteError,
)
from beauty_track.domain.models import (
    Category,
    Identity,
    IdentityKind,
    JournalStats,
    MigrationResult,
    Photo,
    PhotoInput,
    PhotoTag,
    Plan,
    ProcedureFields,
    ProcedureRecord,
    ProcedureUpdate,
    Reminder,
    ReminderInput,
    ReminderInterval,
)
from beauty_track.domain.ports import (
    BlobStorage,
    IdentityVerifier,
    KeyValueStorage,
    LocalRecordStore,
    PhotoResizer,
    ProcedureRepository,
    UserPlanSource,
)

__all__ = [
    # Models
    "Category",
    "PhotoTag",
    "ReminderInterval",
    "Plan",
    "IdentityKind",
    "Identity",
    "ProcedureFields",
    "ProcedureUpdate",
    "ProcedureRecord",
    "PhotoInput",
    "Photo",
    "ReminderInput",
    "Reminder",
    "MigrationResult",
    "JournalStats",
    # Errors
    "BeautyTrackError",
    "ValidationError",
    "NotAuthenticatedError",
    "NotFoundError",
    "StorageReadError",
    "StorageWriteError",
    "UploadError",
    "WriteError",
    "AuthError",
    # Ports
    "KeyValueStorage",
    "LocalRecordStore",
    "ProcedureRepository",
    "BlobStorage",
    "PhotoResizer",
    "UserPlanSource",
    "IdentityVerifier",
]
