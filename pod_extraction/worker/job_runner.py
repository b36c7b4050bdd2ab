from pod_extraction.database.models import JobRecord
from pod_extraction.database.repositories.documents_repository import DocumentsRepository
from pod_extraction.database.repositories.job_repository import JobRepository
from pod_extraction.documents.exceptions import FileReadError, UnsupportedStorageError
from pod_extraction.documents.file_store import FileStore
from pod_extraction.extraction.orchestrator import Orchestrator
from pod_extraction.logging.logger import Log


class JobRunner:
    """Run one extraction job and record its outcome. Jobs are never retried."""

    def __init__(
        self,
        orchestrator: Orchestrator,
        job_repo: JobRepository,
        doc_repo: DocumentsRepository,
        file_store: FileStore,
    ) -> None:
        self._orchestrator = orchestrator
        self._job_repo = job_repo
        self._doc_repo = doc_repo
        self._file_store = file_store

    def run(self, job: JobRecord) -> None:
        """Execute a single job with error handling."""
        Log.info(
            f"Running job {job.id} (attempt {job.attempts})",
            document_id=job.document_id,
        )
        try:
            file_bytes = self._load_file(job)
            self._orchestrator.run(
                job.document_id,
                file_bytes,
                takeover_run_id=job.extraction_run_id,
                heartbeat=lambda run_id: self._job_repo.heartbeat(job.id, run_id),
            )
            self._job_repo.mark_done(job.id)
            Log.info(f"Job {job.id} completed successfully")
        except Exception as exc:
            self._handle_failure(job, exc)

    def _load_file(self, job: JobRecord) -> bytes:
        document = self._doc_repo.find_by_id(job.document_id)
        try:
            return self._file_store.load(document)
        except (FileNotFoundError, FileReadError, UnsupportedStorageError) as exc:
            self._orchestrator.abort(
                job.document_id,
                str(exc),
                takeover_run_id=job.extraction_run_id,
            )
            raise

    def _handle_failure(self, job: JobRecord, exc: Exception) -> None:
        Log.exception(f"Job {job.id} failed: {exc}", document_id=job.document_id)
        self._job_repo.mark_failed(job.id, str(exc))
