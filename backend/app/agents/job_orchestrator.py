# backend/app/agents/job_orchestrator.py

import logging
import time
from typing import Any, Callable, List, Optional
from uuid import uuid4

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from app.agents.itinerary_agent import ItineraryAgent
from app.core.config_loader import settings
from app.core.errors import InputValidationError, PersistenceError
from app.core.logger import job_logger, logger
from app.db.firestore_store import FirestoreJobStore
from app.models.job_models import Day, JobSnapshot, JobStatus


Scheduler = Callable[..., Any]


class JobOrchestrator:
    """
    Owns the job state machine:

        processing --(itinerary generated and valid)--> completed
        processing --(any generation/store failure)---> failed

    `submit` writes the processing document synchronously and hands `run`
    to a scheduler (FastAPI BackgroundTasks.add_task in the app), so the
    caller gets the job id back before generation starts.
    """

    def __init__(
        self,
        store: Optional[FirestoreJobStore] = None,
        agent: Optional[ItineraryAgent] = None,
        terminal_write_attempts: Optional[int] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self.store = store or FirestoreJobStore()
        self.agent = agent or ItineraryAgent()
        self.terminal_write_attempts = terminal_write_attempts or settings.terminal_write_attempts
        self.sleep = sleep or time.sleep

    # -----------------------------------------------------------
    # SUBMIT
    # -----------------------------------------------------------
    def submit(self, destination: Any, duration_days: Any, schedule: Scheduler) -> str:
        destination, duration_days = validate_request(destination, duration_days)

        job_id = str(uuid4())
        # must be durable before the id is handed out
        self.store.create(job_id, destination, duration_days)

        schedule(self.run, job_id, destination, duration_days)
        logger.info(f"Scheduled generation for job {job_id}")
        return job_id

    # -----------------------------------------------------------
    # BACKGROUND RUN
    # -----------------------------------------------------------
    def run(self, job_id: str, destination: str, duration_days: int) -> JobStatus:
        """Drive one job to a terminal state. Never raises."""
        log = job_logger(job_id)
        log.info(f"Generating {duration_days}-day itinerary for {destination}")
        try:
            itinerary = self.agent.generate(destination, duration_days)
            self._write_terminal(job_id, JobStatus.COMPLETED, itinerary, None)
            return JobStatus.COMPLETED
        except Exception as e:
            message = getattr(e, "message", None) or str(e) or type(e).__name__
            log.warning(f"Job failed: {message}")

        try:
            self._write_terminal(job_id, JobStatus.FAILED, [], message)
            return JobStatus.FAILED
        except Exception as e:
            # nothing left to record the failure in
            log.error(f"Left in processing, terminal write failed: {e}")
            return JobStatus.PROCESSING

    def _write_terminal(
        self,
        job_id: str,
        status: JobStatus,
        itinerary: List[Day],
        error: Optional[str],
    ) -> None:
        retrying = Retrying(
            stop=stop_after_attempt(self.terminal_write_attempts),
            wait=wait_exponential(multiplier=0.5, max=5),
            retry=retry_if_exception_type(PersistenceError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            sleep=self.sleep,
            reraise=True,
        )
        retrying(self.store.patch_terminal, job_id, status, itinerary, error)

    # -----------------------------------------------------------
    # STATUS
    # -----------------------------------------------------------
    def status(self, job_id: str) -> JobSnapshot:
        return self.store.read(job_id)


# ---------------------------------------------------------------
# INPUT VALIDATION
# ---------------------------------------------------------------
def validate_request(destination: Any, duration_days: Any):
    if not isinstance(destination, str) or not destination.strip():
        raise InputValidationError("destination must be a non-empty string")

    # bool is an int subclass, True is not a day count
    if isinstance(duration_days, bool) or not isinstance(duration_days, int):
        raise InputValidationError("durationDays must be an integer >= 1")
    if duration_days < 1:
        raise InputValidationError("durationDays must be an integer >= 1")

    return destination.strip(), duration_days
