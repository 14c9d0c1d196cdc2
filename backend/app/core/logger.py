# backend/app/core/logger.py

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from app.core.config_loader import settings


# -------------------------------------------------------------------
# LOG FILE (relative paths resolve against backend/)
# -------------------------------------------------------------------
LOG_DIR = Path(settings.log_dir)
if not LOG_DIR.is_absolute():
    LOG_DIR = Path(__file__).resolve().parents[2] / LOG_DIR
LOG_DIR.mkdir(parents=True, exist_ok=True)

LOG_FILE = LOG_DIR / "jobs.log"

LOG_FORMAT = (
    "%(asctime)s | %(levelname)s | %(name)s | %(funcName)s:%(lineno)d | %(message)s"
)
formatter = logging.Formatter(LOG_FORMAT)


# -------------------------------------------------------------------
# HANDLERS: rotating file (INFO+) and console (configurable)
# -------------------------------------------------------------------
file_handler = RotatingFileHandler(
    LOG_FILE,
    maxBytes=5 * 1024 * 1024,   # 5 MB
    backupCount=5,
    encoding="utf-8"
)
file_handler.setFormatter(formatter)
file_handler.setLevel(logging.INFO)

console_handler = logging.StreamHandler()
console_handler.setFormatter(formatter)
console_handler.setLevel(settings.log_level.upper())


logger = logging.getLogger("itinerary_jobs")
logger.setLevel(logging.DEBUG)

# uvicorn --reload imports this module twice
if not logger.handlers:
    logger.addHandler(file_handler)
    logger.addHandler(console_handler)


# -------------------------------------------------------------------
# PER-JOB ADAPTER
# -------------------------------------------------------------------
class JobLogAdapter(logging.LoggerAdapter):
    """Prefixes every record with the job id so one job can be grepped end to end."""

    def process(self, msg, kwargs):
        return f"[job {self.extra['job_id']}] {msg}", kwargs


def job_logger(job_id: str) -> JobLogAdapter:
    return JobLogAdapter(logger, {"job_id": job_id})
