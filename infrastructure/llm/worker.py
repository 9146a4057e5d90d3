"""Background AI worker.

A single daemon thread takes jobs from an unbounded FIFO queue, performs
one blocking chat call per job and posts exactly one ``AIResult`` per job
to the result queue. The worker never touches board state.
"""

import logging
import queue
import threading
from datetime import date
from typing import Callable, List, Optional

from .client import LLMClient
from .errors import LLMError
from .jobs import AIResult, EditJob, Job, TriageJob
from .prompts import build_messages
from .response_parser import parse_response

logger = logging.getLogger("aipm.ai")

_STOP = None


def error_result(job: Job, message: str) -> AIResult:
    if isinstance(job, EditJob):
        return AIResult(
            task_id=job.task_id,
            error=message,
            source_text=job.instruction,
            enrich=job.enrich,
        )
    return AIResult(error=message, source_text=job.raw)


def run_job(client: LLMClient, job: Job, today: Optional[date] = None) -> AIResult:
    """Process one job synchronously; errors become an ``AIResult.error``."""
    try:
        content = client.complete(build_messages(job, today))
        return parse_response(content, job)
    except LLMError as exc:
        logger.warning("AI job failed: %s", exc)
        return error_result(job, str(exc))


class AIWorker:
    def __init__(self, client: LLMClient, *, today: Optional[Callable[[], date]] = None) -> None:
        self.client = client
        self._today = today
        self._jobs: "queue.Queue[Optional[Job]]" = queue.Queue()
        self._results: "queue.Queue[AIResult]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._pending = 0
        self._pending_lock = threading.Lock()

    @property
    def configured(self) -> bool:
        return self.client.configured

    @property
    def pending(self) -> int:
        """Jobs enqueued whose results were not yet drained."""
        with self._pending_lock:
            return self._pending

    def start(self) -> "AIWorker":
        if self._thread is None:
            self._thread = threading.Thread(target=self._loop, name="aipm-ai-worker", daemon=True)
            self._thread.start()
        return self

    def stop(self, timeout: float = 1.0) -> None:
        if self._thread is None:
            return
        self._jobs.put(_STOP)
        self._thread.join(timeout)
        self._thread = None

    def enqueue(self, job: Job) -> None:
        with self._pending_lock:
            self._pending += 1
        self._jobs.put(job)
        self.start()

    def drain(self) -> List[AIResult]:
        """Every result available right now, without blocking."""
        out: List[AIResult] = []
        while True:
            try:
                out.append(self._results.get_nowait())
            except queue.Empty:
                break
        self._mark_taken(len(out))
        return out

    def recv(self, timeout: float) -> Optional[AIResult]:
        try:
            result = self._results.get(timeout=timeout)
        except queue.Empty:
            return None
        self._mark_taken(1)
        return result

    def _mark_taken(self, count: int) -> None:
        if count:
            with self._pending_lock:
                self._pending = max(0, self._pending - count)

    def _loop(self) -> None:
        while True:
            job = self._jobs.get()
            if job is _STOP:
                break
            today = self._today() if self._today else None
            try:
                result = run_job(self.client, job, today)
            except Exception as exc:
                logger.exception("AI worker crashed on job")
                result = error_result(job, f"AI worker error: {exc}")
            self._results.put(result)


__all__ = ["AIWorker", "run_job", "error_result"]
