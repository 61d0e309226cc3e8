"""ドメインモデル - 外部依存なしのデータ構造"""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field, replace
from enum import Enum

from beauty_track.domain.errors import ValidationError


class Category(Enum):
    """施術カテゴリ（閉じた集合）"""

    FACE = "face"
    SKIN = "skin"
    BODY = "body"
    HAIR = "hair"
    MAKEUP = "makeup"
    BROWS = "brows"
    LASHES = "lashes"
    NAILS = "nails"
    TAN = "tan"


class PhotoTag(Enum):
    """写真のビフォー/アフター区分"""

    BEFORE = "before"
    AFTER = "after"


class ReminderInterval(Enum):
    """メンテナンスリマインダーの間隔"""

    DAYS_30 = "30days"
    DAYS_90 = "90days"
    MONTHS_6 = "6months"
    YEAR_1 = "1year"
    CUSTOM = "custom"


class Plan(Enum):
    """サブスクリプションのティア"""

    FREE = "free"
    PREMIUM = "premium"


class IdentityKind(Enum):
    GUEST = "guest"
    AUTHENTICATED = "authenticated"


@dataclass(frozen=True)
class ProcedureFields:
    """施術レコードの編集可能な項目"""

    name: str  # 例: "Lip Filler"
    category: Category
    date: datetime.date  # 施術日
    clinic: str | None = None
    cost: float | None = None  # 0以上
    notes: str | None = None
    product_brand: str | None = None  # 例: "Juvederm"

    def __post_init__(self) -> None:
        name = (self.name or "").strip()
        if not name:
            raise ValidationError("Please enter a procedure name.")
        object.__setattr__(self, "name", name)
        if self.cost is not None and self.cost < 0:
            raise ValidationError("Cost must not be negative.")


@dataclass(frozen=True)
class ProcedureUpdate:
    """
    施術レコードの部分更新。

    None の項目は変更しない。clinic/notes/product_brand に空文字を渡すと値をクリアする。
    """

    name: str | None = None
    category: Category | None = None
    date: datetime.date | None = None
    clinic: str | None = None
    cost: float | None = None
    notes: str | None = None
    product_brand: str | None = None

    def merged(self, base: ProcedureFields) -> ProcedureFields:
        """base に更新内容をマージした ProcedureFields を返す"""
        changes: dict = {}
        for name in ("name", "category", "date", "cost"):
            value = getattr(self, name)
            if value is not None:
                changes[name] = value
        for name in ("clinic", "notes", "product_brand"):
            value = getattr(self, name)
            if value is not None:
                changes[name] = value.strip() or None
        return replace(base, **changes)


@dataclass(frozen=True)
class PhotoInput:
    """保存前の写真（撮影・選択されたローカルファイルの場所）"""

    uri: str  # 例: "file:///data/user/0/.../IMG_0012.jpg"
    tag: PhotoTag


@dataclass(frozen=True)
class Photo:
    """保存済みの写真"""

    id: str
    uri: str  # ゲスト: ローカルファイル / 認証済み: 公開URL
    tag: PhotoTag
    timestamp: datetime.datetime


@dataclass(frozen=True)
class ReminderInput:
    """保存前のリマインダー"""

    interval: ReminderInterval
    next_date: datetime.date
    custom_days: int | None = None  # interval == CUSTOM の場合のみ意味を持つ
    enabled: bool = True


@dataclass(frozen=True)
class Reminder:
    """保存済みのリマインダー（施術レコードにつき最大1件）"""

    id: str
    procedure_id: str
    interval: ReminderInterval
    next_date: datetime.date
    custom_days: int | None = None
    enabled: bool = True

    def to_input(self) -> ReminderInput:
        return ReminderInput(
            interval=self.interval,
            next_date=self.next_date,
            custom_days=self.custom_days,
            enabled=self.enabled,
        )


@dataclass(frozen=True)
class ProcedureRecord:
    """施術レコード（写真とリマインダーを所有する）"""

    id: str
    name: str
    category: Category
    date: datetime.date
    created_at: datetime.datetime
    updated_at: datetime.datetime
    clinic: str | None = None
    cost: float | None = None
    notes: str | None = None
    product_brand: str | None = None
    photos: tuple[Photo, ...] = ()
    reminder: Reminder | None = None

    @property
    def fields(self) -> ProcedureFields:
        return ProcedureFields(
            name=self.name,
            category=self.category,
            date=self.date,
            clinic=self.clinic,
            cost=self.cost,
            notes=self.notes,
            product_brand=self.product_brand,
        )

    def photos_by_tag(self, tag: PhotoTag) -> list[Photo]:
        return [p for p in self.photos if p.tag == tag]


@dataclass(frozen=True)
class Identity:
    """端末上の利用者ID（ゲスト or 認証済み）"""

    kind: IdentityKind
    user_id: str  # ゲスト: "guest_..." / 認証済み: Firebase Auth UID
    email: str = ""
    display_name: str = ""

    @property
    def is_guest(self) -> bool:
        return self.kind == IdentityKind.GUEST


@dataclass(frozen=True)
class MigrationResult:
    """ゲストデータ移行の結果"""

    guest_id: str
    auth_id: str
    attempted: int = 0
    migrated: list[str] = field(default_factory=list)  # 移行元（ローカル）のレコードID
    failed: list[str] = field(default_factory=list)
    cleared: bool = False


@dataclass(frozen=True)
class JournalStats:
    """施術記録の集計"""

    procedure_count: int
    photo_count: int
    total_cost: float
    by_category: dict[Category, int] = field(default_factory=dict)
    plan: Plan = Plan.FREE
    max_procedures: int | None = None  # premium は無制限（None）
    max_photos: int | None = None
