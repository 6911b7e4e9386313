from __future__ import annotations

import argparse
import logging
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path.cwd() / ".env", override=False)

from lesson_uploader import settings
from lesson_uploader.container import build_services
from lesson_uploader.domain.errors import ConfigurationError, RemoteServiceError
from lesson_uploader.domain.models import PassSummary, QueueSnapshot, UploadGroup
from lesson_uploader.services.sheet_embed_service import summary_message

VIDEO_EXTENSIONS = {".mp4", ".mov", ".mkv", ".avi", ".webm", ".m4v"}


def collect_files(paths: list[str]) -> list[Path]:
    files: list[Path] = []
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            files.extend(
                sorted(
                    child
                    for child in path.iterdir()
                    if child.is_file() and child.suffix.lower() in VIDEO_EXTENSIONS
                )
            )
        elif path.is_file():
            files.append(path)
        else:
            raise SystemExit(f"File not found: {raw}")
    return files


def print_groups(groups: list[UploadGroup]) -> None:
    for group in groups:
        if group.needs_manual_selection:
            header = group.library
        else:
            header = f"{group.library} / {group.collection}"
        print(f"{header} ({len(group.items)})")
        for item in group.items:
            line = f"  [{item.status.value}] {item.filename}"
            if item.needs_manual_selection:
                line += f" - {item.reason}"
                if item.suggested_libraries:
                    suggestions = ", ".join(
                        f"{name} ({score})" for name, score in item.suggested_libraries[:3]
                    )
                    line += f" | suggestions: {suggestions}"
            elif item.error_message:
                line += f" - {item.error_message}"
            print(line)


def print_summary(summary: PassSummary) -> None:
    print(
        f"Finished in {summary.elapsed_s:.1f}s: {summary.completed} uploaded, "
        f"{summary.skipped} skipped, {summary.failed} failed, {summary.paused} paused"
    )
    if summary.retry is not None and summary.retry.attempted:
        print(
            f"Retries: {summary.retry.succeeded} succeeded, "
            f"{summary.retry.failed} failed of {summary.retry.attempted}"
        )


def _print_event(snapshot: QueueSnapshot) -> None:
    if snapshot.event is not None:
        print(f"[{snapshot.event.level}] {snapshot.event.message}")


def _cmd_libraries(services: dict, args: argparse.Namespace) -> int:
    libraries = services["catalog_service"].list_libraries(refresh=args.refresh)
    for library in libraries:
        print(f"{library.library_id}\t{library.name}")
    print(f"{len(libraries)} libraries")
    return 0


def _cmd_preview(services: dict, args: argparse.Namespace) -> int:
    scheduler = services["upload_scheduler"]
    scheduler.enqueue_preview(collect_files(args.files), args.year)
    print_groups(scheduler.groups())
    return 0


def _cmd_upload(services: dict, args: argparse.Namespace) -> int:
    scheduler = services["upload_scheduler"]
    scheduler.enqueue_preview(collect_files(args.files), args.year)
    manual = scheduler.stats()["manual"]
    if manual:
        print(f"{manual} files need manual selection and will not be uploaded:")
        print_groups([group for group in scheduler.groups() if group.needs_manual_selection])
    unsubscribe = scheduler.subscribe(_print_event)
    try:
        summary = scheduler.start_upload(args.year, auto_retry=not args.no_retry)
    finally:
        unsubscribe()
        services["embed_sync_service"].shutdown(wait=True)
    print_summary(summary)
    return 1 if summary.failed and (summary.retry is None or summary.retry.failed) else 0


def _cmd_sync_embeds(services: dict, args: argparse.Namespace) -> int:
    if services["sheet_embed_service"] is None:
        raise SystemExit(
            "GOOGLE_SHEETS_ACCESS_TOKEN and GOOGLE_SHEETS_SPREADSHEET_ID are required."
        )
    embed_sync = services["embed_sync_service"]
    try:
        result = embed_sync.sync_pending()
    finally:
        embed_sync.shutdown(wait=True)
    total = result.updated_count + len(result.not_found_names) + len(result.skipped_names)
    print(summary_message(result, total))
    for name in result.not_found_names:
        print(f"  not found: {name}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lesson-uploader",
        description="Classify lesson videos by filename and upload them to the video host.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    libraries = subparsers.add_parser("libraries", help="List video libraries.")
    libraries.add_argument("--refresh", action="store_true", help="Ignore the session cache.")
    libraries.set_defaults(handler=_cmd_libraries)

    preview = subparsers.add_parser("preview", help="Show how files would be classified.")
    preview.add_argument("files", nargs="+", help="Video files or folders.")
    preview.add_argument("--year", default=settings.COLLECTION_YEAR, help="Collection year.")
    preview.set_defaults(handler=_cmd_preview)

    upload = subparsers.add_parser("upload", help="Classify and upload files.")
    upload.add_argument("files", nargs="+", help="Video files or folders.")
    upload.add_argument("--year", default=settings.COLLECTION_YEAR, help="Collection year.")
    upload.add_argument("--concurrency", type=int, default=None, help="Parallel transfers.")
    upload.add_argument("--no-retry", action="store_true", help="Skip the retry pass.")
    upload.set_defaults(handler=_cmd_upload)

    sync = subparsers.add_parser("sync-embeds", help="Push stored embed codes to the sheet.")
    sync.set_defaults(handler=_cmd_sync_embeds)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        services = build_services(max_concurrent=getattr(args, "concurrency", None))
    except ConfigurationError as exc:
        raise SystemExit(f"Configuration error: {exc}") from exc
    try:
        return args.handler(services, args)
    except RemoteServiceError as exc:
        raise SystemExit(f"Remote service error: {exc}") from exc


if __name__ == "__main__":
    raise SystemExit(main())
