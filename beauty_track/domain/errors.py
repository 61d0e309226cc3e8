"""ドメイン固有の例外クラス

握りつぶすか呼び出し元へ伝播するかの判断は以下の2箇所に限定する:
- HostedRecordStore の写真ごとのアップロードループ（strict_photos）
- GuestMigrationService のレコードごとの移行ループ
それ以外では全て呼び出し元に伝播する。
"""


class BeautyTrackError(Exception):
    """Beauty Track の基底例外"""

    pass


class ValidationError(BeautyTrackError):
    """入力値エラー（施術名が空、費用が負の値等）"""

    pass


class NotAuthenticatedError(BeautyTrackError):
    """ゲストでも認証済みでもない状態で保存しようとした"""

    pass


class NotFoundError(BeautyTrackError):
    """指定IDのレコードが対象ストアに存在しない"""

    pass


class StorageReadError(BeautyTrackError):
    """読み込みエラー（端末ストレージの読み込み失敗、ホスト側の行の型不一致）"""

    pass


class StorageWriteError(BeautyTrackError):
    """端末ストレージへの書き込みエラー"""

    pass


class UploadError(BeautyTrackError):
    """写真1枚のアップロードエラー（リサイズ後のオブジェクトストレージ書き込み）"""

    pass


class WriteError(BeautyTrackError):
    """ホスト側の行書き込みエラー（procedures/photos/reminders）"""

    pass


class AuthError(BeautyTrackError):
    """IDトークンの検証エラー"""

    pass
