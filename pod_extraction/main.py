"""Command line entry point: extraction worker and document operations."""

import argparse
import json
import sys
from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import Any

from pod_extraction.config.settings import Settings
from pod_extraction.database.connection import close_pool, init_pool
from pod_extraction.database.repositories.documents_repository import DocumentsRepository
from pod_extraction.database.repositories.job_repository import JobRepository
from pod_extraction.documents.exceptions import DocumentError
from pod_extraction.documents.file_store import FileStore
from pod_extraction.documents.models import UploadRequest
from pod_extraction.documents.service import DocumentService, build_document_service
from pod_extraction.extraction.orchestrator import build_orchestrator
from pod_extraction.logging.logger import Log
from pod_extraction.worker.job_runner import JobRunner
from pod_extraction.worker.worker import Worker


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pod-extraction",
        description="Extract container data from proof-of-delivery PDFs.",
    )
    commands = parser.add_subparsers(dest="command")

    commands.add_parser("worker", help="Run the extraction worker loop (default)")

    upload = commands.add_parser("upload", help="Upload a PDF and enqueue extraction")
    upload.add_argument("file", type=Path)
    upload.add_argument("--user-id", required=True)
    upload.add_argument("--instruction-number", required=True)
    upload.add_argument("--name", help="Document name (defaults to the file name)")
    upload.add_argument("--mime-type", default="application/pdf")
    upload.add_argument("--company-id")
    upload.add_argument("--branch-id")

    status = commands.add_parser("status", help="Show a document's extraction status")
    status.add_argument("document_id")

    pages = commands.add_parser("pages", help="Show extracted pages of a document")
    pages.add_argument("document_id")

    usage = commands.add_parser("usage", help="Show token usage of a document")
    usage.add_argument("document_id")

    retry = commands.add_parser("extract", help="Enqueue a new extraction attempt")
    retry.add_argument("document_id")

    listing = commands.add_parser("list", help="List documents, newest first")
    listing.add_argument("--limit", type=int, default=20)
    listing.add_argument("--offset", type=int, default=0)
    listing.add_argument("--user-id")

    return parser


def run_worker(settings: Settings) -> None:
    """Build dependencies and start the worker loop."""
    files_root = Path(settings.files_root)
    job_repo = JobRepository(settings.max_job_attempts, settings.job_lease_seconds)
    doc_repo = DocumentsRepository()
    job_runner = JobRunner(
        build_orchestrator(settings),
        job_repo,
        doc_repo,
        FileStore(files_root=files_root),
    )
    Worker(job_repo, doc_repo, job_runner, settings).run()


def run_command(args: argparse.Namespace, service: DocumentService) -> Any:
    if args.command == "upload":
        return service.upload(
            UploadRequest(
                user_id=args.user_id,
                instruction_number=args.instruction_number,
                document_name=args.name or args.file.name,
                content=args.file.read_bytes(),
                mime_type=args.mime_type,
                company_id=args.company_id,
                branch_id=args.branch_id,
            )
        )
    if args.command == "status":
        return service.get_extraction_status(args.document_id)
    if args.command == "pages":
        return service.get_extracted_data(args.document_id)
    if args.command == "usage":
        return {
            "summary": service.get_token_usage_summary(args.document_id),
            "requests": service.get_token_usage(args.document_id),
        }
    if args.command == "extract":
        return service.request_extraction(args.document_id)
    if args.command == "list":
        if args.user_id:
            return service.list_documents_by_user(args.user_id)
        return service.list_documents(limit=args.limit, offset=args.offset)
    raise ValueError(f"Unknown command '{args.command}'")


def _to_jsonable(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    if isinstance(value, list):
        return [_to_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {key: _to_jsonable(item) for key, item in value.items()}
    return value


def main(argv: list[str] | None = None) -> int:
    """Entry point: initialize pool -> dispatch command -> close pool."""
    args = build_parser().parse_args(argv)
    settings = Settings()
    Log.configure(settings.log_level)
    init_pool(settings)

    try:
        if args.command in (None, "worker"):
            run_worker(settings)
            return 0
        service = build_document_service(settings)
        try:
            result = run_command(args, service)
        except DocumentError as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 1
        print(json.dumps(_to_jsonable(result), indent=2, default=str))
        return 0
    finally:
        close_pool()


if __name__ == "__main__":
    sys.exit(main())
