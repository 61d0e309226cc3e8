"""SessionService - 端末上の利用者ID（なし / ゲスト / 認証済み）の管理

ゲストID・ゲストモード・認証セッション・「一度でもサインインしたか」フラグを
端末のキー・バリューストレージに保存する。
ゲスト状態からサインインした場合は、その場で1回だけゲストデータを移行する。
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from beauty_track.domain.errors import AuthError, StorageReadError
from beauty_track.domain.models import Identity, IdentityKind, MigrationResult
from beauty_track.domain.ports import IdentityVerifier, KeyValueStorage
from beauty_track.services.guest_migration import GuestMigrationService

logger = logging.getLogger(__name__)

GUEST_USER_ID_KEY = "@beauty_track_guest_user_id"
GUEST_MODE_KEY = "@beauty_track_guest_mode"
AUTH_SESSION_KEY = "@beauty_track_auth_session"
HAS_EVER_LOGGED_IN_KEY = "@beauty_track_has_ever_logged_in"

IdentityListener = Callable[[Identity | None], None]


class StoredSession(BaseModel):
    """端末に保存される認証セッション"""

    model_config = ConfigDict(extra="forbid")

    uid: str
    email: str = ""
    display_name: str = ""


@dataclass(frozen=True)
class SignInResult:
    """サインイン結果（ゲストからの移行があれば、その結果も含む）"""

    identity: Identity
    migration: MigrationResult | None = None


class SessionService:
    """
    利用者IDの状態遷移を管理する。

    状態: なし → ゲスト → 認証済み（移行あり）/ なし → 認証済み
    サインアウトで「なし」に戻る。has_ever_logged_in はサインアウト後も保持する。
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        verifier: IdentityVerifier | None = None,
        migration: GuestMigrationService | None = None,
    ) -> None:
        """
        Args:
            storage: 端末のキー・バリューストレージ
            verifier: ID トークンの検証（None の場合はゲストモードのみ）
            migration: サインイン時のゲストデータ移行
        """
        self._storage = storage
        self._verifier = verifier
        self._migration = migration
        self._listeners: list[IdentityListener] = []

    def current_identity(self) -> Identity | None:
        """
        現在の利用者ID。認証セッションがあればゲストより優先する。

        Raises:
            StorageReadError: 保存された認証セッションが壊れている場合
        """
        raw = self._storage.get(AUTH_SESSION_KEY)
        if raw:
            try:
                stored = StoredSession.model_validate_json(raw)
            except PydanticValidationError as e:
                raise StorageReadError(
                    "Stored sign-in session is corrupt. Please sign out and sign in again."
                ) from e
            return Identity(
                kind=IdentityKind.AUTHENTICATED,
                user_id=stored.uid,
                email=stored.email,
                display_name=stored.display_name,
            )

        guest_id = self._storage.get(GUEST_USER_ID_KEY)
        if guest_id and self._storage.get(GUEST_MODE_KEY) == "true":
            return Identity(kind=IdentityKind.GUEST, user_id=guest_id)
        return None

    def start_guest(self) -> Identity:
        """
        ゲストモードを開始する。

        既にゲストIDがあれば再利用し、サインイン済みならその Identity を返す。
        """
        current = self.current_identity()
        if current is not None:
            return current

        guest_id = f"guest_{uuid.uuid4().hex}"
        self._storage.set(GUEST_USER_ID_KEY, guest_id)
        self._storage.set(GUEST_MODE_KEY, "true")
        identity = Identity(kind=IdentityKind.GUEST, user_id=guest_id)
        logger.info("Started guest mode: guest_id=%s", guest_id)
        self._notify(identity)
        return identity

    def sign_in(self, id_token: str) -> SignInResult:
        """
        ID トークンでサインインする。

        ゲスト状態だった場合はゲストデータを移行してからゲストIDを消す。
        移行の取得段階で失敗した場合は例外を送出し、ゲスト状態のまま残す。

        Raises:
            AuthError: トークンが無効な場合、または認証が未設定の場合
            StorageReadError: 保存済みの認証セッションが壊れている場合
        """
        if self._verifier is None:
            raise AuthError("Sign-in is not configured (PROJECT_ID is not set)")

        identity = self._verifier.verify(id_token)
        previous = self.current_identity()

        migration_result = None
        if previous is not None and previous.is_guest and self._migration is not None:
            migration_result = self._migration.migrate(
                previous.user_id, identity.user_id
            )

        self._clear_guest()
        stored = StoredSession(
            uid=identity.user_id,
            email=identity.email,
            display_name=identity.display_name,
        )
        self._storage.set(AUTH_SESSION_KEY, stored.model_dump_json())
        self._storage.set(HAS_EVER_LOGGED_IN_KEY, "true")
        logger.info("Signed in: uid=%s", identity.user_id)
        self._notify(identity)
        return SignInResult(identity=identity, migration=migration_result)

    def sign_out(self) -> None:
        """
        サインアウトする。ゲスト状態も解除する。

        リフレッシュトークンの失効や保存済みセッションの読み込みに失敗しても、
        端末上のセッションは必ず削除する。
        """
        try:
            current = self.current_identity()
        except StorageReadError as e:
            logger.warning("Discarding unreadable session on sign-out: %s", e)
            current = None

        if (
            current is not None
            and not current.is_guest
            and self._verifier is not None
        ):
            try:
                self._verifier.revoke(current.user_id)
            except AuthError as e:
                logger.warning(
                    "Failed to revoke refresh tokens: uid=%s, error=%s",
                    current.user_id,
                    e,
                )

        self._storage.remove(AUTH_SESSION_KEY)
        self._clear_guest()
        logger.info("Signed out")
        self._notify(None)

    def has_ever_logged_in(self) -> bool:
        return self._storage.get(HAS_EVER_LOGGED_IN_KEY) == "true"

    def subscribe(self, listener: IdentityListener) -> Callable[[], None]:
        """
        利用者IDの変化を購読する。

        Returns:
            購読解除用の関数
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _clear_guest(self) -> None:
        self._storage.remove(GUEST_USER_ID_KEY)
        self._storage.remove(GUEST_MODE_KEY)

    def _notify(self, identity: Identity | None) -> None:
        for listener in list(self._listeners):
            listener(identity)
