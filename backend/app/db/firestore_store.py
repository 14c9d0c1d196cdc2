# backend/app/db/firestore_store.py

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests
from pydantic import ValidationError

from app.core.config_loader import settings
from app.core.errors import NotFoundError, PersistenceError
from app.core.logger import logger
from app.core.security import CredentialProvider, ServiceAccountTokenMinter
from app.db.firestore_codec import (
    document_to_snapshot,
    encode_fields,
    itinerary_values,
    job_fields,
)
from app.models.job_models import Day, JobSnapshot, JobStatus


TERMINAL_FIELDS = ("status", "itinerary", "error", "completedAt")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FirestoreJobStore:
    """
    One Firestore document per job, addressed as <collection>/<jobId>.

    Talks to the Firestore REST API directly. Each call mints a fresh bearer
    token through the credential provider; tokens are never reused.
    """

    def __init__(
        self,
        credentials: Optional[CredentialProvider] = None,
        project_id: Optional[str] = None,
        collection: Optional[str] = None,
        base_url: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
    ):
        self.credentials = credentials or ServiceAccountTokenMinter()
        self.project_id = project_id or settings.FIREBASE_PROJECT_ID
        self.collection = collection or settings.firestore_collection
        self.base_url = (base_url or settings.firestore_base_url).rstrip("/")
        # no shared Session: module-level requests calls open a fresh one each time
        self.session = session or requests
        self.timeout = timeout or settings.firestore_timeout_seconds

    def document_url(self, job_id: str) -> str:
        return (
            f"{self.base_url}/projects/{self.project_id}"
            f"/databases/(default)/documents/{self.collection}/{quote(job_id, safe='')}"
        )

    # -------------------------------------------------------
    # CREATE (initial processing document)
    # -------------------------------------------------------
    def create(self, job_id: str, destination: str, duration_days: int) -> JobSnapshot:
        snapshot = JobSnapshot(
            jobId=job_id,
            status=JobStatus.PROCESSING,
            destination=destination,
            durationDays=duration_days,
            createdAt=utcnow(),
            completedAt=None,
            itinerary=[],
            error=None,
        )

        # no update mask: the whole document is overwritten
        self._request(
            "PATCH",
            job_id,
            json={"fields": encode_fields(job_fields(snapshot))},
        )
        logger.info(f"Created job {job_id} ({destination}, {duration_days} days)")
        return snapshot

    # -------------------------------------------------------
    # PATCH TERMINAL STATE
    # -------------------------------------------------------
    def patch_terminal(
        self,
        job_id: str,
        status: JobStatus,
        itinerary: List[Day],
        error: Optional[str],
    ) -> None:
        if status == JobStatus.PROCESSING:
            raise ValueError("patch_terminal needs a terminal status")

        fields = encode_fields({
            "status": status.value,
            "itinerary": itinerary_values(itinerary),
            "error": error,
            "completedAt": utcnow(),
        })
        params = [("updateMask.fieldPaths", name) for name in TERMINAL_FIELDS]
        params.append(("currentDocument.exists", "true"))

        self._request("PATCH", job_id, json={"fields": fields}, params=params)
        logger.info(f"Job {job_id} -> {status.value}")

    # -------------------------------------------------------
    # READ
    # -------------------------------------------------------
    def read(self, job_id: str) -> JobSnapshot:
        document = self._request("GET", job_id)
        try:
            return document_to_snapshot(job_id, document)
        except (ValidationError, ValueError, TypeError) as e:
            logger.error(f"Undecodable document for job {job_id}: {e}")
            raise PersistenceError(f"Stored job {job_id} could not be decoded") from e

    # -------------------------------------------------------
    # HTTP
    # -------------------------------------------------------
    def _request(self, method: str, job_id: str, **kwargs) -> Dict[str, Any]:
        # a slash would address another collection or document
        if not job_id or "/" in job_id or job_id in (".", ".."):
            raise NotFoundError("Job not found")

        token = self.credentials.mint()
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }

        try:
            resp = self.session.request(
                method,
                self.document_url(job_id),
                headers=headers,
                timeout=self.timeout,
                **kwargs,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Document store unreachable ({method} {job_id}): {type(e).__name__}")
            raise PersistenceError(f"Document store unreachable: {type(e).__name__}") from e

        if resp.status_code == 404:
            raise NotFoundError("Job not found")

        if not 200 <= resp.status_code < 300:
            reason = _store_error(resp)
            logger.error(f"Document store {method} {job_id} failed: HTTP {resp.status_code} {reason}")
            raise PersistenceError(f"Document store returned HTTP {resp.status_code}: {reason}")

        try:
            return resp.json()
        except ValueError as e:
            raise PersistenceError("Document store returned a non-JSON response") from e


def _store_error(resp) -> str:
    try:
        body = resp.json()
    except ValueError:
        return "unreadable response"
    if isinstance(body, list) and body:
        body = body[0]
    if not isinstance(body, dict):
        return "unreadable response"
    err = body.get("error") or {}
    if isinstance(err, dict):
        return err.get("message") or err.get("status") or "unknown error"
    return str(err)
