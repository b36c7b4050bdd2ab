import time

from pod_extraction.config.settings import Settings
from pod_extraction.database.connection import get_connection
from pod_extraction.database.models import JobRecord
from pod_extraction.database.repositories.documents_repository import DocumentsRepository
from pod_extraction.database.repositories.job_repository import JobRepository
from pod_extraction.logging.logger import Log
from pod_extraction.worker.job_runner import JobRunner


class Worker:
    """Poll loop: sweep stalled jobs -> claim -> dispatch -> sleep when idle."""

    def __init__(
        self,
        job_repo: JobRepository,
        doc_repo: DocumentsRepository,
        job_runner: JobRunner,
        settings: Settings,
    ) -> None:
        self._job_repo = job_repo
        self._doc_repo = doc_repo
        self._job_runner = job_runner
        self._settings = settings

    def run(self, max_jobs: int | None = None) -> None:
        """Main poll loop. Runs forever until interrupted.

        If max_jobs is set, stop after processing that many jobs (for testing).
        """
        Log.info("Worker started, polling for extraction jobs")
        jobs_done = 0
        try:
            while True:
                if max_jobs is not None and jobs_done >= max_jobs:
                    break
                self._sweep_stalled_jobs()
                job = self._try_claim_job()
                if job:
                    self._job_runner.run(job)
                    jobs_done += 1
                else:
                    Log.debug("No jobs available, sleeping")
                    time.sleep(self._settings.job_poll_interval_seconds)
        except KeyboardInterrupt:
            Log.info("Worker shutting down gracefully")

    def _try_claim_job(self) -> JobRecord | None:
        """Attempt to claim the next job. Gracefully handle DB errors."""
        try:
            with get_connection() as conn:
                return self._job_repo.claim_next_job(conn)
        except Exception as exc:
            Log.warning(f"Database error, will retry: {exc}")
            return None

    def _sweep_stalled_jobs(self) -> None:
        """Fail jobs whose last attempt died and release their documents."""
        try:
            with get_connection() as conn:
                jobs = self._job_repo.fail_exhausted_stalled_jobs(conn)
                for job in jobs:
                    if job.extraction_run_id is not None:
                        self._doc_repo.fail_abandoned_run(
                            conn, job.document_id, job.extraction_run_id
                        )
                conn.commit()
        except Exception as exc:
            Log.warning(f"Stalled job sweep failed, will retry: {exc}")
            return

        for job in jobs:
            Log.error(
                f"Job {job.id} abandoned after {job.attempts} attempts, "
                f"document {job.document_id} marked FAILED"
            )
