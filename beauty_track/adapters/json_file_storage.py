"""JSON File Storage Adapter

KeyValueStorage ABC の端末ローカル実装。
1つの JSON ファイルに {key: value} の文字列マップとして保存する。
書き込みは一時ファイル経由で置き換えるため、途中で落ちても既存内容は壊れない。
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from beauty_track.domain.errors import StorageReadError, StorageWriteError
from beauty_track.domain.ports import KeyValueStorage

logger = logging.getLogger(__name__)


class JsonFileKeyValueStorage(KeyValueStorage):
    """
    JSON ファイルを使った KeyValueStorage 実装。

    ファイルが存在しない場合は空のストレージとして扱う。
    """

    def __init__(self, path: str | Path) -> None:
        """
        Args:
            path: 保存先ファイルパス（親ディレクトリは自動作成）
        """
        self._path = Path(path).expanduser()

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)
        logger.debug("Stored key=%s (%d chars)", key, len(value))

    def remove(self, key: str) -> None:
        data = self._load()
        if key not in data:
            return
        del data[key]
        self._save(data)
        logger.debug("Removed key=%s", key)

    def _load(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            raw = self._path.read_text(encoding="utf-8")
            data = json.loads(raw) if raw.strip() else {}
        except (OSError, json.JSONDecodeError) as e:
            raise StorageReadError(f"Failed to read {self._path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageReadError(f"Unexpected content in {self._path}")
        return data

    def _save(self, data: dict[str, str]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=self._path.parent, prefix=".storage-", suffix=".json"
            )
        except OSError as e:
            raise StorageWriteError(f"Failed to write {self._path}: {e}") from e

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False)
            os.replace(tmp_path, self._path)
        except OSError as e:
            # 書きかけの一時ファイルを残さない
            try:
                os.unlink(tmp_path)
            except FileNotFoundError:
                pass
            raise StorageWriteError(f"Failed to write {self._path}: {e}") from e
