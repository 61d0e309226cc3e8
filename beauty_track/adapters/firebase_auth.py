"""Firebase Auth Adapter

IdentityVerifier ABC の Firebase Admin SDK 実装。
クライアント側のサインインで得た ID トークンを検証して認証済み Identity を返す。
"""

from __future__ import annotations

import logging

import firebase_admin
import firebase_admin.auth as fb_auth
from firebase_admin import credentials as fb_creds
from firebase_admin import exceptions as fb_exc

from beauty_track.domain.errors import AuthError
from beauty_track.domain.models import Identity, IdentityKind
from beauty_track.domain.ports import IdentityVerifier

logger = logging.getLogger(__name__)


def get_firebase_app(project_id: str | None = None) -> firebase_admin.App:
    """Firebase Admin を初期化（プロセス内で1回のみ）"""
    try:
        # 既に初期化済みの場合はそれを使う
        return firebase_admin.get_app()
    except ValueError:
        cred = fb_creds.ApplicationDefault()
        app = firebase_admin.initialize_app(
            cred,
            options={"projectId": project_id} if project_id else {},
        )
        logger.info("Firebase Admin initialized project=%s", project_id)
        return app


class FirebaseIdentityVerifier(IdentityVerifier):
    """Firebase Auth の ID トークンを検証する IdentityVerifier 実装"""

    def __init__(self, app: firebase_admin.App | None = None) -> None:
        """
        Args:
            app: 初期化済みの Firebase App（省略時はデフォルト App）
        """
        self._app = app

    def verify(self, id_token: str) -> Identity:
        """
        ID トークンを検証して Identity を返す。

        Raises:
            AuthError: トークンが無効・期限切れの場合、または検証用の公開鍵を取得できない場合
        """
        try:
            decoded = fb_auth.verify_id_token(id_token, app=self._app)
        except (ValueError, fb_auth.InvalidIdTokenError, fb_auth.ExpiredIdTokenError) as e:
            logger.warning("Invalid Firebase ID token: %s", e)
            raise AuthError("Invalid or expired Firebase ID token") from e
        except fb_exc.FirebaseError as e:
            # CertificateFetchError 等（トークン自体ではなく通信の問題）
            logger.error("Failed to verify Firebase ID token: %s", e)
            raise AuthError(f"Could not verify sign-in: {e}") from e

        return Identity(
            kind=IdentityKind.AUTHENTICATED,
            user_id=decoded["uid"],
            email=decoded.get("email", ""),
            display_name=decoded.get("name", ""),
        )

    def revoke(self, uid: str) -> None:
        """
        Raises:
            AuthError: 失効に失敗した場合
        """
        try:
            fb_auth.revoke_refresh_tokens(uid, app=self._app)
        except (ValueError, fb_exc.FirebaseError) as e:
            raise AuthError(f"Failed to revoke refresh tokens: {e}") from e
        logger.info("Revoked refresh tokens: uid=%s", uid)
