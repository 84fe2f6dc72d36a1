"""
Ordered, retriable submission queue.

Each queue processes one submission at a time in FIFO order on its own
thread. A failed submission is moved to the back of the queue so it does not
block the submissions behind it, and is dropped once its retries run out.
"""

import threading
import time
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass
from typing import Callable, Deque, Generic, Optional, TypeVar

from .exceptions import SubmissionFailure
from .logging_config import setup_logger

logger = setup_logger()

T = TypeVar("T")


@dataclass
class Retriable(Generic[T]):
    payload: T
    retries_remaining: int
    min_retry_interval: float
    last_attempt_at: float = 0.0
    pending: Optional[Future] = None


class SubmissionQueue(Generic[T]):
    """
    Queue that submits payloads with `submit` and hands exhausted payloads to `on_drop`.

    `submit` returns True to acknowledge a payload and False to retry it. Raising,
    or running longer than `submit_timeout` seconds, counts as a failure. A timed out call is
    waited on again when its payload comes back up rather than being submitted a second time.
    """

    def __init__(
        self,
        submit: Callable[[T], bool],
        on_drop: Callable[[T], None],
        submit_timeout: float = 60.0,
        name: str = "SubmissionQueue",
    ):
        self._submit = submit
        self._on_drop = on_drop
        self.submit_timeout = submit_timeout
        self.name = name

        self.submissions: Deque[Retriable[T]] = deque()
        self.processing = False
        self._lock = threading.Lock()
        self._idle = threading.Event()
        self._idle.set()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"{name}-submit")

    def __len__(self) -> int:
        with self._lock:
            return len(self.submissions)

    def add_submission(self, payload: T, max_retries: int, min_retry_interval: float = 1.0) -> None:
        """
        Add a payload to the back of the queue, starting the processing thread if the queue is idle.
        """
        with self._lock:
            self.submissions.append(
                Retriable(payload=payload, retries_remaining=max_retries, min_retry_interval=min_retry_interval)
            )
            if self.processing:
                return
            self.processing = True
            self._idle.clear()

        thread = threading.Thread(target=self._process_queue, name=f"{self.name}-processor", daemon=True)
        thread.start()

    def contains(self, predicate: Callable[[T], bool]) -> bool:
        """True if any queued payload matches the predicate."""
        with self._lock:
            return any(predicate(item.payload) for item in self.submissions)

    def wait_until_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until the queue is empty. Returns False if the timeout expired first."""
        return self._idle.wait(timeout)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)

    def _process_queue(self) -> None:
        while True:
            with self._lock:
                if not self.submissions:
                    self.processing = False
                    self._idle.set()
                    return
                item = self.submissions[0]

            if item.last_attempt_at:
                wait = item.last_attempt_at + item.min_retry_interval - time.monotonic()
                if wait > 0:
                    time.sleep(wait)
            item.last_attempt_at = time.monotonic()

            try:
                acked = self._attempt(item)
            except Exception as ex:
                logger.error("%s: Unexpected error during submission: %s", self.name, ex, exc_info=True)
                acked = False

            with self._lock:
                self.submissions.popleft()

            if not acked:
                self._retry_submission(item)

    def _attempt(self, item: Retriable[T]) -> bool:
        if item.pending is not None:
            # a timed out call may still land, wait on it rather than submitting the payload twice
            future = item.pending
            logger.warning("%s: Waiting on timed out submission instead of resubmitting", self.name)
        else:
            future = self._executor.submit(self._submit, item.payload)

        try:
            return bool(future.result(timeout=self.submit_timeout))
        except FuturesTimeoutError as ex:
            if item.pending is None:
                # the hung call keeps its thread, give later submissions a fresh one
                item.pending = future
                self._executor.shutdown(wait=False)
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"{self.name}-submit")
            raise SubmissionFailure(f"Submission timed out after {self.submit_timeout} seconds") from ex
        finally:
            if future.done():
                item.pending = None

    def _retry_submission(self, item: Retriable[T]) -> None:
        if item.retries_remaining > 0:
            item.retries_remaining -= 1
            logger.warning(
                "%s: Retrying submission, %s retries remaining.", self.name, item.retries_remaining
            )
            with self._lock:
                self.submissions.append(item)
            return

        logger.error("Submission retry limit reached, dropping submission: %s", item.payload)
        try:
            self._on_drop(item.payload)
        except Exception as ex:
            logger.error("%s: Error handling dropped submission: %s", self.name, ex, exc_info=True)
