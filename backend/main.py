import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.routes_jobs import router as jobs_router
from app.core.config_loader import settings
from app.core.errors import JobError
from app.core.logger import logger


app = FastAPI(
    title="Itinerary Jobs",
    description="Asynchronous travel itinerary generation with GPT + Firestore",
    version="1.0.0"
)


# -------------------------------------------------------------
# CORS
# -------------------------------------------------------------
# Set on every response, preflight included.
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


@app.middleware("http")
async def add_cors_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers.update(CORS_HEADERS)
    return response


# -------------------------------------------------------------
# ERRORS → {"error": "..."}
# -------------------------------------------------------------
@app.exception_handler(JobError)
async def job_error_handler(request: Request, exc: JobError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    if any(err.get("type") == "json_invalid" for err in exc.errors()):
        message = "Invalid JSON body"
    else:
        message = "Bad input. Need { destination: string, durationDays: integer >= 1 }"
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error"},
        headers=CORS_HEADERS,
    )


# -------------------------------------------------------------
# ROUTES
# -------------------------------------------------------------
app.include_router(jobs_router)


@app.get("/health")
def health():
    return {
        "status": "ok",
        "env": settings.environment
    }


# -------------------------------------------------------------
# RUN LOCAL
# -------------------------------------------------------------
if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
