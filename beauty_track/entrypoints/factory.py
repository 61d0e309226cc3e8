"""Factory - 依存性注入の組み立て

全AdapterとServiceを組み立て、CLI 等が使うサービス群を生成する。
PROJECT_ID が未設定の場合はゲストモード（端末ローカル）のみで動作する。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from beauty_track.adapters.json_file_storage import JsonFileKeyValueStorage
from beauty_track.adapters.local_record_store import LocalProcedureStore
from beauty_track.config import AppConfig
from beauty_track.domain.ports import KeyValueStorage
from beauty_track.services.guest_migration import GuestMigrationService
from beauty_track.services.hosted_record_store import HostedRecordStore
from beauty_track.services.journal import JournalService
from beauty_track.services.session import SessionService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BeautyTrackApp:
    """プロセス内で1つずつ持つサービス群"""

    config: AppConfig
    session: SessionService
    journal: JournalService
    migration: GuestMigrationService | None


def create_app(
    config: AppConfig | None = None,
    storage: KeyValueStorage | None = None,
) -> BeautyTrackApp:
    """
    サービス群を生成（全依存を組み立て）。

    Args:
        config: アプリケーション設定（Noneの場合は環境変数から読み込み）
        storage: 端末ストレージ（Noneの場合は設定のファイルパスを使用）

    Returns:
        BeautyTrackApp: 組み立て済みのサービス群
    """
    if config is None:
        config = AppConfig.from_env()

    # 1. 端末ローカル
    storage = storage or JsonFileKeyValueStorage(config.device_storage_path)
    local = LocalProcedureStore(storage)

    if not config.hosted_enabled:
        logger.warning("PROJECT_ID not set, running in guest-only mode")
        session = SessionService(storage)
        journal = JournalService(session, local)
        return BeautyTrackApp(
            config=config, session=session, journal=journal, migration=None
        )

    # 2. ホスト側 Adapters 生成（SDK の import はここで遅延させる）
    logger.info("Creating hosted adapters: project_id=%s", config.project_id)
    from google.cloud import firestore, storage as gcs

    from beauty_track.adapters.cloud_storage import GCSBlobStorage
    from beauty_track.adapters.firebase_auth import (
        FirebaseIdentityVerifier,
        get_firebase_app,
    )
    from beauty_track.adapters.firestore_repository import (
        FirestoreProcedureRepository,
        FirestoreUserPlanSource,
    )
    from beauty_track.adapters.pillow_resizer import PillowPhotoResizer

    db = firestore.Client(project=config.project_id, database=config.firestore_database)
    plan_source = FirestoreUserPlanSource(db)
    hosted = HostedRecordStore(
        repository=FirestoreProcedureRepository(db),
        blob_storage=GCSBlobStorage(
            config.photo_bucket, client=gcs.Client(project=config.project_id)
        ),
        resizer=PillowPhotoResizer(),
        plan_source=plan_source,
    )
    verifier = FirebaseIdentityVerifier(get_firebase_app(config.project_id))

    # 3. Services 生成
    migration = GuestMigrationService(local, hosted)
    session = SessionService(storage, verifier=verifier, migration=migration)
    journal = JournalService(session, local, hosted=hosted, plan_source=plan_source)

    logger.info("Services created successfully")
    return BeautyTrackApp(
        config=config, session=session, journal=journal, migration=migration
    )
