# backend/app/api/routes_jobs.py

from functools import lru_cache
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Response
from fastapi.responses import JSONResponse

from app.agents.job_orchestrator import JobOrchestrator
from app.core.errors import InputValidationError
from app.models.job_models import CreateJobIn, JobCreatedOut

router = APIRouter(tags=["jobs"])


@lru_cache
def get_orchestrator() -> JobOrchestrator:
    # built on first request so a missing secret does not break import
    return JobOrchestrator()


# --------------------------
# POST /  → start a job
# --------------------------
@router.post("/", status_code=202, response_model=JobCreatedOut)
def create_job(
    data: CreateJobIn,
    background_tasks: BackgroundTasks,
    orchestrator: JobOrchestrator = Depends(get_orchestrator),
):
    job_id = orchestrator.submit(data.destination, data.durationDays, background_tasks.add_task)
    return JSONResponse(status_code=202, content={"jobId": job_id})


# --------------------------
# GET /?jobId=  → poll a job
# --------------------------
@router.get("/")
def job_status(
    jobId: Optional[str] = Query(None),
    orchestrator: JobOrchestrator = Depends(get_orchestrator),
):
    if not jobId or not jobId.strip():
        raise InputValidationError("Missing jobId parameter")

    snapshot = orchestrator.status(jobId.strip())
    return JSONResponse(status_code=200, content=snapshot.to_response())


# --------------------------
# OPTIONS /  → CORS preflight
# --------------------------
@router.options("/")
def preflight():
    return Response(status_code=204)
