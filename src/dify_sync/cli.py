"""
dify-sync command line.

Subcommands run a single upload or download; without one an interactive
menu is shown.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Sequence

import structlog

from dify_sync.config import (
    DEFAULT_API_URL,
    DifyConfig,
    SettingsFile,
    build_config,
    get_settings_file_path,
    load_settings_file,
    resolve_settings,
    save_settings_file,
)
from dify_sync.core.conflicts import ConflictResolver
from dify_sync.core.download import DownloadProcessor, calculate_download_stats
from dify_sync.core.upload import UploadProcessor, calculate_upload_stats
from dify_sync.errors import ConfigError, DifyError
from dify_sync.local_files import format_file_size, get_local_files
from dify_sync.models import (
    ConflictDecision,
    DownloadResult,
    DownloadStatus,
    FileConflict,
    UploadResult,
    UploadStatus,
)
from dify_sync.observability.logging import configure_logging
from dify_sync.service import (
    create_client,
    create_download_dependencies,
    create_upload_dependencies,
    list_all_documents,
)

log = structlog.get_logger()

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130

# Prompt answers -> (decision, apply to all)
CONFLICT_CHOICES = {
    "o": (ConflictDecision.OVERWRITE, False),
    "s": (ConflictDecision.SKIP, False),
    "a": (ConflictDecision.OVERWRITE, True),
    "l": (ConflictDecision.SKIP, True),
}


# Conflict prompt


def ask_conflict_decision(conflict: FileConflict) -> tuple[ConflictDecision, bool]:
    """Ask on the terminal what to do with an existing file."""
    print(f"\nFile {conflict.file_path} already exists.")
    while True:
        try:
            answer = input("[o]verwrite, [s]kip, overwrite [a]ll, skip a[l]l? ").strip().lower()
        except EOFError:
            return ConflictDecision.SKIP, True
        if answer in CONFLICT_CHOICES:
            return CONFLICT_CHOICES[answer]
        print("Please answer o, s, a or l.")


async def answer_conflicts(
    resolver: ConflictResolver,
    batch: asyncio.Task[list[DownloadResult]],
) -> list[DownloadResult]:
    """
    Serve conflict prompts until the batch download finishes.

    The prompt runs in a worker thread so the event loop keeps running while
    the user decides.
    """
    while not batch.done():
        waiter = asyncio.ensure_future(resolver.wait_for_conflict())
        done, _ = await asyncio.wait({batch, waiter}, return_when=asyncio.FIRST_COMPLETED)
        if waiter not in done:
            waiter.cancel()
            break

        conflict = waiter.result()
        decision, apply_to_all = await asyncio.to_thread(ask_conflict_decision, conflict)
        resolver.resolve(decision, apply_to_all=apply_to_all, conflict=conflict)

    return await batch


# Commands


def _print_upload_progress(file_name: str, percent: int) -> None:
    print(f"\r  [{percent:3d}%] {file_name}", end="", flush=True)


def _print_upload_result(result: UploadResult) -> None:
    if result.status == UploadStatus.SUCCESS:
        print(f"\r  [ ok ] {result.file_name}")
    else:
        print(f"\r  [fail] {result.file_name}: {result.error}")


def _print_download_progress(index: int, total: int, document_name: str) -> None:
    print(f"  [{index + 1}/{total}] {document_name}")


def _print_download_result(result: DownloadResult) -> None:
    if result.status == DownloadStatus.ERROR:
        print(f"         failed: {result.error}")
    elif result.status == DownloadStatus.SKIPPED:
        print("         skipped")


async def run_upload(config: DifyConfig, source: str, recursive: bool = False) -> int:
    """Upload every supported file under `source`."""
    files = await get_local_files(source, recursive=recursive)
    if not files:
        print(f"No supported files found in {source}")
        return EXIT_OK

    total_size = sum(file.size or 0 for file in files)
    print(
        f"Uploading {len(files)} files ({format_file_size(total_size)}) "
        f"to dataset {config.dataset_id}"
    )

    async with create_client(config) as client:
        processor = UploadProcessor(create_upload_dependencies(client, config))
        results = await processor.process_batch(
            files,
            on_progress=_print_upload_progress,
            on_file_complete=_print_upload_result,
        )

    stats = calculate_upload_stats(results)
    print(f"\nUploaded {stats.successful}/{stats.total} files, {stats.failed} failed")
    for error in stats.errors:
        print(f"  {error}")
    return EXIT_FAILURE if stats.failed else EXIT_OK


async def run_download(
    config: DifyConfig,
    output_dir: str,
    force: bool = False,
    document_ids: Sequence[str] | None = None,
    conflict_timeout: float | None = None,
) -> int:
    """Download dataset documents into `output_dir`."""
    async with create_client(config) as client:
        documents = await list_all_documents(client, config)
        if document_ids:
            wanted = set(document_ids)
            documents = [document for document in documents if document.id in wanted]
        if not documents:
            print("No documents to download")
            return EXIT_OK

        print(f"Downloading {len(documents)} documents to {output_dir}")
        resolver = ConflictResolver(force_overwrite=force, timeout=conflict_timeout)
        processor = DownloadProcessor(create_download_dependencies(client, config))
        batch = asyncio.create_task(
            processor.process_batch(
                documents,
                output_dir,
                resolver,
                on_progress=_print_download_progress,
                on_document_complete=_print_download_result,
            )
        )
        results = await answer_conflicts(resolver, batch)

    stats = calculate_download_stats(results)
    print(
        f"\nDownloaded {stats.successful}/{stats.total} documents, "
        f"{stats.skipped} skipped, {stats.failed} failed"
    )
    for error in stats.errors:
        print(f"  {error}")
    return EXIT_FAILURE if stats.failed else EXIT_OK


async def run_list_datasets(config: DifyConfig) -> int:
    """Print the datasets visible to the API key."""
    async with create_client(config) as client:
        page = 1
        while True:
            response = await client.list_datasets(page=page, limit=100)
            for dataset in response.data:
                print(f"{dataset.id}  {dataset.name}  ({dataset.document_count} documents)")
            if not response.has_more or not response.data:
                break
            page += 1
    return EXIT_OK


async def run_list_documents(config: DifyConfig) -> int:
    """Print the documents in the configured dataset."""
    async with create_client(config) as client:
        documents = await list_all_documents(client, config)
    for document in documents:
        words = f"{document.word_count} words" if document.word_count is not None else ""
        print(f"{document.id}  {document.name}  {words}".rstrip())
    return EXIT_OK


def configure() -> int:
    """Prompt for connection settings and save them to the settings file."""
    current = load_settings_file() or SettingsFile()
    print(f"Settings file: {get_settings_file_path()}")

    def ask(label: str, value: str | None) -> str | None:
        shown = f" [{value}]" if value else ""
        answer = input(f"{label}{shown}: ").strip()
        return answer or value

    updated = SettingsFile(
        api_url=ask("API URL", current.api_url or DEFAULT_API_URL),
        api_key=ask("API key", current.api_key),
        dataset_id=ask("Dataset ID", current.dataset_id),
    )
    path = save_settings_file(updated)
    print(f"Saved {path}")
    return EXIT_OK


# Interactive menu


def _ask_yes_no(question: str, default: bool = False) -> bool:
    suffix = " [Y/n] " if default else " [y/N] "
    answer = input(question + suffix).strip().lower()
    if not answer:
        return default
    return answer in ("y", "yes")


def interactive_session(overrides: dict[str, object]) -> int:
    """Run the menu loop until the user exits."""
    exit_code = EXIT_OK
    while True:
        settings = resolve_settings(**overrides)
        try:
            config: DifyConfig | None = build_config(settings)
        except ConfigError as e:
            config = None
            print(f"\n{e}")

        print("\ndify-sync")
        print("  1. Upload files to Dify" + ("" if config else " (settings required)"))
        print("  2. Download files from Dify" + ("" if config else " (settings required)"))
        print("  3. Settings")
        print("  4. Exit")

        try:
            choice = input("Select an option: ").strip().lower()
        except EOFError:
            return exit_code

        if choice in ("4", "q", "exit", "quit"):
            return exit_code
        if choice == "3":
            configure()
            continue
        if choice not in ("1", "2"):
            print("Unknown option")
            continue
        if config is None:
            print("Configure settings first (option 3)")
            continue

        try:
            if choice == "1":
                source = input("Directory to upload from [.]: ").strip() or "."
                recursive = _ask_yes_no("Include subdirectories?")
                exit_code = asyncio.run(run_upload(config, source, recursive))
            else:
                output_dir = input("Directory to download into [.]: ").strip() or "."
                exit_code = asyncio.run(
                    run_download(config, output_dir, conflict_timeout=settings.conflict_timeout)
                )
        except (DifyError, OSError) as e:
            log.error("interactive_command_failed", error=str(e))
            print(f"Error: {e}")
            exit_code = EXIT_FAILURE


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="dify-sync",
        description="Sync local text files with a Dify knowledge base",
    )
    parser.add_argument(
        "--dataset-id",
        help="Dify dataset ID (DIFY_DATASET_ID in the environment takes precedence)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Output logs as JSON",
    )
    subparsers = parser.add_subparsers(dest="command")

    upload_parser = subparsers.add_parser("upload", help="Upload files from a directory")
    upload_parser.add_argument("path", help="Directory to upload from")
    upload_parser.add_argument(
        "-r",
        "--recursive",
        action="store_true",
        help="Include subdirectories",
    )

    download_parser = subparsers.add_parser("download", help="Download documents to a directory")
    download_parser.add_argument("path", help="Directory to download into")
    download_parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="Overwrite existing files without asking",
    )
    download_parser.add_argument(
        "--document",
        action="append",
        dest="document_ids",
        metavar="ID",
        help="Only download this document (repeatable)",
    )

    subparsers.add_parser("datasets", help="List datasets")
    subparsers.add_parser("documents", help="List documents in the dataset")
    subparsers.add_parser("configure", help="Save connection settings")

    return parser


def run(args: argparse.Namespace) -> int:
    """Dispatch parsed arguments to a command."""
    overrides: dict[str, object] = {"dataset_id": args.dataset_id, "log_level": args.log_level}
    settings = resolve_settings(**overrides)
    configure_logging(
        level=settings.log_level,
        json_output=args.json_logs or settings.log_json,
    )

    if args.command is None:
        return interactive_session(overrides)
    if args.command == "configure":
        return configure()

    config = build_config(settings, require_dataset=args.command != "datasets")
    log.debug("command_started", command=args.command, dataset_id=config.dataset_id)

    if args.command == "upload":
        return asyncio.run(run_upload(config, args.path, args.recursive))
    if args.command == "download":
        return asyncio.run(
            run_download(
                config,
                args.path,
                force=args.force,
                document_ids=args.document_ids,
                conflict_timeout=settings.conflict_timeout,
            )
        )
    if args.command == "datasets":
        return asyncio.run(run_list_datasets(config))
    return asyncio.run(run_list_documents(config))


def main(argv: Sequence[str] | None = None) -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    try:
        exit_code = run(args)
    except (ConfigError, DifyError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        exit_code = EXIT_FAILURE
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        exit_code = EXIT_INTERRUPTED
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
