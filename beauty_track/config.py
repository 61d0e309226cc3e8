"""設定管理 - 環境変数の型安全な読み込み"""

import os
from dataclasses import dataclass
from dotenv import load_dotenv

DEFAULT_DEVICE_STORAGE_PATH = "~/.beauty_track/storage.json"


@dataclass(frozen=True)
class AppConfig:
    """アプリケーション設定"""
    device_storage_path: str = DEFAULT_DEVICE_STORAGE_PATH
    project_id: str = ""  # 空の場合はゲストモードのみ（Firebase/GCS を使わない）
    photo_bucket: str = "procedure-photos"
    firestore_database: str = "(default)"

    @property
    def hosted_enabled(self) -> bool:
        return bool(self.project_id)

    @classmethod
    def from_env(cls) -> "AppConfig":
        """環境変数から設定を読み込む"""
        load_dotenv()

        return cls(
            device_storage_path=os.getenv(
                "DEVICE_STORAGE_PATH", DEFAULT_DEVICE_STORAGE_PATH
            ),
            project_id=os.getenv("PROJECT_ID", ""),
            photo_bucket=os.getenv("PHOTO_BUCKET", "procedure-photos"),
            firestore_database=os.getenv("FIRESTORE_DATABASE", "(default)"),
        )
