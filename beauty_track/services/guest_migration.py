"""GuestMigrationService - ゲストデータを認証済みアカウントへ移行

ゲストがサインインした直後に1回だけ呼ばれる。
移行はあくまで利便機能であり、1件の失敗でサインインを止めない:

1. ローカルの施術レコードを全件取得（失敗時は例外を送出し、ローカルデータは消さない）
2. 各レコードをホスト側に作成（写真の再アップロード込み）。失敗はログに残して次へ
3. 全件を試行した後、ローカルデータを無条件に削除
"""

from __future__ import annotations

import logging

from beauty_track.domain.models import MigrationResult, PhotoInput, ProcedureRecord
from beauty_track.domain.ports import LocalRecordStore
from beauty_track.services.hosted_record_store import HostedRecordStore

logger = logging.getLogger(__name__)


class GuestMigrationService:
    """ゲストIDのローカルデータを認証済みIDのホスト側ストアへ移す"""

    def __init__(self, local: LocalRecordStore, hosted: HostedRecordStore) -> None:
        """
        Args:
            local: ゲスト用のローカルストア
            hosted: 認証済みユーザー用のホスト側ストア
        """
        self._local = local
        self._hosted = hosted

    def migrate(self, guest_id: str, auth_id: str) -> MigrationResult:
        """
        ゲストの全レコードを移行する。

        レコード単位の失敗（写真のアップロード失敗を含む）は送出しない。
        送出するのはステップ1の取得自体が失敗した場合のみで、その場合
        ローカルデータは削除しない。

        Args:
            guest_id: 移行元のゲストID
            auth_id: 移行先の認証済みユーザーID

        Returns:
            MigrationResult: 移行結果（成功・失敗したローカルレコードID）
        """
        logger.info(
            "Starting guest data migration: guest_id=%s, auth_id=%s", guest_id, auth_id
        )

        records = self._local.list(guest_id)
        if not records:
            logger.info("No guest procedures to migrate")
            return MigrationResult(guest_id=guest_id, auth_id=auth_id)

        logger.info("Migrating %d procedures", len(records))

        migrated: list[str] = []
        failed: list[str] = []
        for record in records:
            try:
                self._migrate_one(auth_id, record)
                migrated.append(record.id)
                logger.info("Migrated procedure: %s", record.name)
            except Exception as e:
                # 他のレコードの移行は続行
                failed.append(record.id)
                logger.exception("Error migrating procedure %s: %s", record.id, e)

        self._local.clear(guest_id)

        logger.info(
            "Guest data migration completed: migrated=%d, failed=%d",
            len(migrated),
            len(failed),
        )
        return MigrationResult(
            guest_id=guest_id,
            auth_id=auth_id,
            attempted=len(records),
            migrated=migrated,
            failed=failed,
            cleared=True,
        )

    def _migrate_one(self, auth_id: str, record: ProcedureRecord) -> None:
        photos = [PhotoInput(uri=p.uri, tag=p.tag) for p in record.photos]
        reminder = record.reminder.to_input() if record.reminder else None
        self._hosted.create(
            auth_id,
            record.fields,
            photos,
            reminder,
            strict_photos=True,
        )

    def has_guest_data(self, guest_id: str) -> bool:
        """移行すべきゲストデータがあるか。読み込みに失敗した場合は False"""
        try:
            return len(self._local.list(guest_id)) > 0
        except Exception as e:
            logger.error("Error checking guest data: guest_id=%s, error=%s", guest_id, e)
            return False
