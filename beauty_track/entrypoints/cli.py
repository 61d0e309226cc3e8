#!/usr/bin/env python3
"""CLI Entrypoint - コマンドラインから実行

使い方:
    python -m beauty_track.entrypoints.cli guest
    python -m beauty_track.entrypoints.cli add --name "Lip Filler" --category face \\
        --date 2026-05-01 --before ./before.jpg --after ./after.jpg --reminder 90days
    python -m beauty_track.entrypoints.cli list
    python -m beauty_track.entrypoints.cli sign-in --token <firebase id token>

環境変数:
    LOG_LEVEL: ログレベル (DEBUG, INFO, WARNING, ERROR) デフォルト: WARNING
    PROJECT_ID: 未設定の場合はゲストモードのみ
    DEVICE_STORAGE_PATH / PHOTO_BUCKET / FIRESTORE_DATABASE: config.py 参照
"""

from __future__ import annotations

import argparse
import datetime
import logging
import os
import sys
from pathlib import Path

from beauty_track.domain.errors import BeautyTrackError
from beauty_track.domain.models import (
    Category,
    PhotoInput,
    PhotoTag,
    ProcedureFields,
    ProcedureRecord,
    ProcedureUpdate,
    ReminderInterval,
)
from beauty_track.entrypoints.factory import BeautyTrackApp, create_app
from beauty_track.logging_config import setup_logging

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Failed to complete the request. Please try again."


def _date(value: str) -> datetime.date:
    try:
        return datetime.date.fromisoformat(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid date (YYYY-MM-DD): {value}") from e


def _add_field_options(parser: argparse.ArgumentParser, required: bool) -> None:
    parser.add_argument("--name", required=required)
    parser.add_argument(
        "--category",
        required=required,
        choices=[c.value for c in Category],
    )
    parser.add_argument("--date", type=_date, required=required, help="YYYY-MM-DD")
    parser.add_argument("--clinic")
    parser.add_argument("--cost", type=float)
    parser.add_argument("--notes")
    parser.add_argument("--brand", dest="product_brand")
    parser.add_argument("--before", nargs="*", default=[], metavar="PATH")
    parser.add_argument("--after", nargs="*", default=[], metavar="PATH")
    parser.add_argument(
        "--reminder", choices=[i.value for i in ReminderInterval], default=None
    )
    parser.add_argument("--custom-days", type=int, default=None)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="beauty-track", description="Beauty Track - 施術記録"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("guest", help="ゲストモードを開始")
    sub.add_parser("whoami", help="現在の利用者IDを表示")
    sign_in = sub.add_parser("sign-in", help="Firebase ID トークンでサインイン")
    sign_in.add_argument("--token", required=True)
    sub.add_parser("sign-out", help="サインアウト")

    add = sub.add_parser("add", help="施術を記録")
    _add_field_options(add, required=True)

    edit = sub.add_parser("edit", help="施術を編集（写真は追加のみ）")
    edit.add_argument("procedure_id")
    _add_field_options(edit, required=False)

    sub.add_parser("list", help="施術の一覧")
    show = sub.add_parser("show", help="施術の詳細")
    show.add_argument("procedure_id")
    delete = sub.add_parser("delete", help="施術を削除")
    delete.add_argument("procedure_id")
    sub.add_parser("upcoming", help="30日以内のリマインダー")
    sub.add_parser("stats", help="集計")

    migrate = sub.add_parser("migrate", help="ゲストデータを手動で移行")
    migrate.add_argument("--guest-id", required=True)
    migrate.add_argument("--auth-id", required=True)
    return parser


def _photo_uri(value: str) -> str:
    """ファイルパスは絶対パスにする（別ディレクトリから実行しても読めるように）"""
    if "://" in value:
        return value
    return str(Path(value).resolve())


def _photos(args: argparse.Namespace) -> list[PhotoInput]:
    return [PhotoInput(uri=_photo_uri(p), tag=PhotoTag.BEFORE) for p in args.before] + [
        PhotoInput(uri=_photo_uri(p), tag=PhotoTag.AFTER) for p in args.after
    ]


def _interval(args: argparse.Namespace) -> ReminderInterval | None:
    return ReminderInterval(args.reminder) if args.reminder else None


def _format_record(record: ProcedureRecord, detailed: bool = False) -> str:
    line = f"{record.id}  {record.date.isoformat()}  [{record.category.value}] {record.name}"
    if record.reminder and record.reminder.enabled:
        line += f"  (next: {record.reminder.next_date.isoformat()})"
    if not detailed:
        return line

    lines = [line]
    for label, value in (
        ("clinic", record.clinic),
        ("cost", record.cost),
        ("brand", record.product_brand),
        ("notes", record.notes),
    ):
        if value is not None:
            lines.append(f"  {label}: {value}")
    for photo in record.photos:
        lines.append(f"  photo[{photo.tag.value}]: {photo.uri}")
    return "\n".join(lines)


def run(app: BeautyTrackApp, args: argparse.Namespace) -> None:
    """サブコマンドを実行して結果を stdout に出力する"""
    session = app.session
    journal = app.journal

    if args.command == "guest":
        identity = session.start_guest()
        print(f"{identity.kind.value}: {identity.user_id}")

    elif args.command == "whoami":
        identity = session.current_identity()
        if identity is None:
            print("not signed in")
        else:
            print(f"{identity.kind.value}: {identity.user_id}")

    elif args.command == "sign-in":
        result = session.sign_in(args.token)
        print(f"signed in: {result.identity.user_id}")
        if result.migration is not None and result.migration.attempted:
            print(
                f"migrated {len(result.migration.migrated)}/"
                f"{result.migration.attempted} guest procedure(s)"
            )

    elif args.command == "sign-out":
        session.sign_out()
        print("signed out")

    elif args.command == "add":
        fields = ProcedureFields(
            name=args.name,
            category=Category(args.category),
            date=args.date,
            clinic=args.clinic,
            cost=args.cost,
            notes=args.notes,
            product_brand=args.product_brand,
        )
        record = journal.add(fields, _photos(args), _interval(args), args.custom_days)
        print(_format_record(record, detailed=True))

    elif args.command == "edit":
        updates = ProcedureUpdate(
            name=args.name,
            category=Category(args.category) if args.category else None,
            date=args.date,
            clinic=args.clinic,
            cost=args.cost,
            notes=args.notes,
            product_brand=args.product_brand,
        )
        record = journal.edit(
            args.procedure_id, updates, _photos(args), _interval(args), args.custom_days
        )
        print(_format_record(record, detailed=True))

    elif args.command == "list":
        for record in journal.list():
            print(_format_record(record))

    elif args.command == "show":
        print(_format_record(journal.get(args.procedure_id), detailed=True))

    elif args.command == "delete":
        journal.remove(args.procedure_id)
        print(f"deleted {args.procedure_id}")

    elif args.command == "upcoming":
        for record in journal.upcoming():
            print(_format_record(record))

    elif args.command == "stats":
        stats = journal.stats()
        procedures_limit = stats.max_procedures if stats.max_procedures else "unlimited"
        photos_limit = stats.max_photos if stats.max_photos else "unlimited"
        print(f"plan: {stats.plan.value}")
        print(f"procedures: {stats.procedure_count} / {procedures_limit}")
        print(f"photos: {stats.photo_count} / {photos_limit}")
        print(f"total cost: {stats.total_cost:.2f}")
        for category, count in sorted(stats.by_category.items(), key=lambda kv: kv[0].value):
            print(f"  {category.value}: {count}")

    elif args.command == "migrate":
        if app.migration is None:
            raise BeautyTrackError("Hosted storage is not configured (PROJECT_ID is not set)")
        result = app.migration.migrate(args.guest_id, args.auth_id)
        print(
            f"attempted={result.attempted} migrated={len(result.migrated)} "
            f"failed={len(result.failed)} cleared={result.cleared}"
        )


def main(argv: list[str] | None = None) -> None:
    """メインエントリーポイント"""
    setup_logging(os.getenv("LOG_LEVEL", "WARNING"))
    args = build_parser().parse_args(argv)

    try:
        app = create_app()
        run(app, args)

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)

    except BeautyTrackError as e:
        # 操作者が対処できるメッセージをそのまま表示
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    except Exception:
        logger.exception("Fatal error")
        print(f"Error: {GENERIC_ERROR_MESSAGE}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
