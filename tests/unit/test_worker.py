from unittest.mock import MagicMock, patch

from pod_extraction.database.models import JobRecord
from pod_extraction.worker.worker import Worker

DOCUMENT_ID = "0b6f5f9e-7f57-4a7e-9f33-1b1f1c2d3e4f"


def _make_worker() -> tuple[Worker, MagicMock, MagicMock, MagicMock]:
    """Create a Worker with mocked dependencies."""
    mock_job_repo = MagicMock()
    mock_doc_repo = MagicMock()
    mock_runner = MagicMock()
    settings = MagicMock(job_poll_interval_seconds=1)
    worker = Worker(mock_job_repo, mock_doc_repo, mock_runner, settings)
    return worker, mock_job_repo, mock_doc_repo, mock_runner


def _make_job(job_id: int = 1, extraction_run_id: str | None = None) -> JobRecord:
    return JobRecord(
        id=job_id,
        document_id=DOCUMENT_ID,
        status="processing",
        attempts=3,
        extraction_run_id=extraction_run_id,
    )


def _mock_connection(mock_get_conn: MagicMock) -> MagicMock:
    mock_conn = MagicMock()
    mock_get_conn.return_value.__enter__ = MagicMock(return_value=mock_conn)
    mock_get_conn.return_value.__exit__ = MagicMock(return_value=False)
    return mock_conn


class TestWorkerDispatch:
    def test_dispatches_job_to_runner(self) -> None:
        worker, _jobs, _docs, mock_runner = _make_worker()
        job = _make_job()

        with (
            patch.object(worker, "_sweep_stalled_jobs"),
            patch.object(worker, "_try_claim_job", side_effect=[job, KeyboardInterrupt]),
        ):
            worker.run()

        mock_runner.run.assert_called_once_with(job)

    def test_stops_after_max_jobs(self) -> None:
        worker, _jobs, _docs, mock_runner = _make_worker()

        with (
            patch.object(worker, "_sweep_stalled_jobs"),
            patch.object(worker, "_try_claim_job", side_effect=[_make_job(1), _make_job(2)]),
        ):
            worker.run(max_jobs=2)

        assert mock_runner.run.call_count == 2

    def test_sweeps_before_each_claim(self) -> None:
        worker, _jobs, _docs, _runner = _make_worker()

        with (
            patch.object(worker, "_sweep_stalled_jobs") as mock_sweep,
            patch.object(worker, "_try_claim_job", side_effect=[_make_job(), KeyboardInterrupt]),
        ):
            worker.run()

        assert mock_sweep.call_count == 2


class TestWorkerSleep:
    def test_sleeps_when_no_job(self) -> None:
        worker, _jobs, _docs, _runner = _make_worker()

        with (
            patch.object(worker, "_sweep_stalled_jobs"),
            patch.object(worker, "_try_claim_job", side_effect=[None, KeyboardInterrupt]),
            patch("pod_extraction.worker.worker.time.sleep") as mock_sleep,
        ):
            worker.run()

        mock_sleep.assert_called_once_with(1)


class TestWorkerShutdown:
    def test_handles_keyboard_interrupt(self) -> None:
        worker, _jobs, _docs, _runner = _make_worker()

        with (
            patch.object(worker, "_sweep_stalled_jobs"),
            patch.object(worker, "_try_claim_job", side_effect=KeyboardInterrupt),
        ):
            worker.run()  # Should not raise


class TestClaim:
    @patch("pod_extraction.worker.worker.get_connection")
    def test_returns_claimed_job(self, mock_get_conn: MagicMock) -> None:
        worker, mock_job_repo, _docs, _runner = _make_worker()
        mock_conn = _mock_connection(mock_get_conn)
        job = _make_job()
        mock_job_repo.claim_next_job.return_value = job

        assert worker._try_claim_job() is job
        mock_job_repo.claim_next_job.assert_called_once_with(mock_conn)

    @patch("pod_extraction.worker.worker.get_connection")
    def test_database_error_returns_none(self, mock_get_conn: MagicMock) -> None:
        worker, _jobs, _docs, _runner = _make_worker()
        mock_get_conn.side_effect = RuntimeError("pool exhausted")

        assert worker._try_claim_job() is None


class TestStalledJobSweep:
    @patch("pod_extraction.worker.worker.get_connection")
    def test_fails_documents_of_abandoned_runs(self, mock_get_conn: MagicMock) -> None:
        worker, mock_job_repo, mock_doc_repo, _runner = _make_worker()
        mock_conn = _mock_connection(mock_get_conn)
        mock_job_repo.fail_exhausted_stalled_jobs.return_value = [
            _make_job(1, extraction_run_id="dead-run"),
            _make_job(2, extraction_run_id=None),
        ]

        worker._sweep_stalled_jobs()

        mock_doc_repo.fail_abandoned_run.assert_called_once_with(
            mock_conn, DOCUMENT_ID, "dead-run"
        )
        mock_conn.commit.assert_called_once()

    @patch("pod_extraction.worker.worker.get_connection")
    def test_nothing_stalled(self, mock_get_conn: MagicMock) -> None:
        worker, mock_job_repo, mock_doc_repo, _runner = _make_worker()
        _mock_connection(mock_get_conn)
        mock_job_repo.fail_exhausted_stalled_jobs.return_value = []

        worker._sweep_stalled_jobs()

        mock_doc_repo.fail_abandoned_run.assert_not_called()

    @patch("pod_extraction.worker.worker.get_connection")
    def test_database_error_is_not_raised(self, mock_get_conn: MagicMock) -> None:
        worker, _jobs, _docs, _runner = _make_worker()
        mock_get_conn.side_effect = RuntimeError("connection refused")

        worker._sweep_stalled_jobs()  # Should not raise
