from __future__ import annotations

import logging

from bookledger.api.router import api_router
from bookledger.core.config import settings
from bookledger.core.logging import configure_logging
from bookledger.core.otel import init_otel
from bookledger.middleware.body_limit import BodySizeLimitMiddleware
from bookledger.middleware.request_id import RequestIdMiddleware
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.api_name)

app.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.max_request_body_bytes)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
)
app.add_middleware(RequestIdMiddleware)


@app.exception_handler(Exception)
async def unhandled_exception(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "unhandled error on %s %s", request.method, request.url.path, exc_info=exc
    )
    return JSONResponse({"detail": "Internal server error"}, status_code=500)


app.include_router(api_router)

init_otel(app)
