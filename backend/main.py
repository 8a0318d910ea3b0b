"""
FastAPI application.

Responsibilities
----------------
* Instantiate the FastAPI app.
* Register CORS and request-logging middleware.
* Map the error taxonomy in ``core.errors`` onto a uniform JSON envelope:
  ``{"success": false, "error": <reason>, "detail": <message>}``.
* Mount the feature routers (auth, admin, meeting proxy, mail).
* Expose /api/health for container liveness checks.
"""

import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware

from auth.router import router as auth_router
from admin.router import router as admin_router
from meeting.router import router as meeting_router
from mail.router import router as mail_router
from core.config import settings
from core.errors import AppError
from core.logger import logger

app = FastAPI(title="Meeting Admin Console", version="1.0.0")

# ---------------------------------------------------------------------------
# Error envelope
# ---------------------------------------------------------------------------


def _envelope(status_code: int, reason: str, detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": reason, "detail": detail},
    )


# ---------------------------------------------------------------------------
# Request-logging middleware
# ---------------------------------------------------------------------------
# Only the URL and metadata are recorded, never bodies or headers: login
# payloads, bearer tokens and config secrets pass through here.


class _RequestLogMiddleware(BaseHTTPMiddleware):
    """Log method, path, client IP, response status and latency (ms)."""

    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.perf_counter()
        try:
            response: Response = await call_next(request)
        except Exception:
            # Storage / parse failures stay in the log; the client gets a
            # generic 500 that still passes back out through CORS
            logger.exception("unhandled error on %s %s", request.method, request.url.path)
            response = _envelope(500, "internal_error", "Internal error")
        elapsed_ms = (time.perf_counter() - start) * 1000

        client_ip = request.client.host if request.client else "unknown"

        logger.info(
            "%s %s | client=%s status=%d latency=%.1fms",
            request.method,
            request.url.path,
            client_ip,
            response.status_code,
            elapsed_ms,
        )
        return response


# The last middleware added is the outermost; CORS wraps every response,
# including the 500 envelope built above.
app.add_middleware(_RequestLogMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)


@app.exception_handler(AppError)
async def _handle_app_error(_: Request, exc: AppError):
    return _envelope(exc.status_code, exc.reason, exc.message)


@app.exception_handler(RequestValidationError)
async def _handle_request_validation(_: Request, exc: RequestValidationError):
    fields = [".".join(str(p) for p in err.get("loc", ())[1:]) for err in exc.errors()]
    detail = "Invalid request body" + (f": {', '.join(f for f in fields if f)}" if fields else "")
    return _envelope(400, "validation_error", detail)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
app.include_router(auth_router)
app.include_router(admin_router)
app.include_router(meeting_router)
app.include_router(mail_router)


@app.on_event("startup")
async def _on_startup():
    logger.info("Meeting Admin Console starting up")


@app.on_event("shutdown")
async def _on_shutdown():
    logger.info("Meeting Admin Console shutting down")


@app.get("/api/health")
def health():
    return {"status": "ok", "time": int(time.time() * 1000)}
