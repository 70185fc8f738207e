"""FastAPI application factory for the user data email service.

Endpoints:

- ``POST /api/email/send`` -- email the user data report to
  ``{"receiverEmail": "..."}``
- ``GET /api/health`` -- liveness check

Every response, including unknown routes and unhandled errors, carries
the ``{"success": bool, "message": str}`` shape.

Example::

    from userdata_mailer.api import create_app

    app = create_app(orchestrator)
    uvicorn.run(app, host="0.0.0.0", port=8080)
"""

import logging

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from userdata_mailer import __version__
from userdata_mailer.models import ApiResponse
from userdata_mailer.orchestrator import DispatchOrchestrator

logger = logging.getLogger(__name__)

HEALTH_MESSAGE = "Email service is healthy"


def _json(status_code: int, response: ApiResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=response.model_dump())


def create_app(orchestrator: DispatchOrchestrator) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        orchestrator: Handles each send request; its collaborators are
            shared by all in-flight requests.

    Returns:
        A configured FastAPI application ready to be served by Uvicorn.
    """
    app = FastAPI(title="User Data Email Service", version=__version__)
    app.state.orchestrator = orchestrator

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return _json(404, ApiResponse(success=False, message="Endpoint not found"))
        return _json(exc.status_code, ApiResponse(success=False, message=str(exc.detail)))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Error on %s %s", request.method, request.url.path)
        return _json(500, ApiResponse(success=False, message=f"Internal server error: {exc}"))

    @app.get("/api/health", response_model=ApiResponse)
    async def health():
        return ApiResponse(success=True, message=HEALTH_MESSAGE)

    @app.post("/api/email/send", response_model=ApiResponse)
    async def send_email(request: Request):
        body = await request.body()
        # The dispatcher blocks while polling the provider.
        result = await run_in_threadpool(request.app.state.orchestrator.handle, body)
        return _json(result.status_code, result.response)

    return app
