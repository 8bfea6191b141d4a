"""HTTP boundary: translates JSON requests into pipeline calls."""

from __future__ import annotations

import time
from typing import Optional
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, Response

from move_relayer.config import ServerConfig
from move_relayer.core.pipeline import RelayContext, RelayPipeline
from move_relayer.core.utils import get_logger
from move_relayer.core.validation import MAX_BODY_BYTES, parse_relay_body
from move_relayer.errors import PayloadTooLargeError, RelayError

LOGGER = get_logger("move_relayer.api")

ALLOWED_HEADERS = "Content-Type"
ALLOWED_METHODS = "GET, POST, OPTIONS"


def _allowed_origin(request: Request, server: ServerConfig) -> Optional[str]:
    if server.allows_any_origin:
        return "*"
    origin = (request.headers.get("origin") or "").rstrip("/")
    if origin in server.cors_origins:
        return origin
    return None


def _apply_cors_headers(request: Request, response: Response, server: ServerConfig) -> None:
    origin = _allowed_origin(request, server)
    if origin is not None:
        response.headers["Access-Control-Allow-Origin"] = origin
    if not server.allows_any_origin:
        response.headers["Vary"] = "Origin"
    response.headers["Access-Control-Allow-Headers"] = ALLOWED_HEADERS
    response.headers["Access-Control-Allow-Methods"] = ALLOWED_METHODS


def _declared_length(request: Request) -> Optional[int]:
    raw = request.headers.get("content-length")
    if raw is None or not raw.isdigit():
        return None
    return int(raw)


async def _read_body(request: Request, limit: int) -> bytes:
    """Read the body chunk by chunk, stopping once it passes ``limit``."""
    declared = _declared_length(request)
    if declared is not None and declared > limit:
        raise PayloadTooLargeError(size=declared, limit=limit)

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > limit:
            raise PayloadTooLargeError(size=len(body), limit=limit)
    return bytes(body)


def create_app(context: RelayContext, server: Optional[ServerConfig] = None) -> FastAPI:
    """Build the FastAPI application around a startup-built ``RelayContext``."""
    server = server or ServerConfig()
    pipeline = RelayPipeline(context)

    app = FastAPI(
        title="Move Relayer",
        description="Relays wallet moves as gas-sponsored transactions",
        version="1.0.0",
    )
    app.state.pipeline = pipeline

    # Registered first so it runs inside the request logging middleware.
    @app.middleware("http")
    async def cors_middleware(request: Request, call_next):
        if request.method == "OPTIONS":
            response = Response(status_code=204)
        else:
            response = await call_next(request)
        _apply_cors_headers(request, response, server)
        return response

    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid4())
        request.state.request_id = request_id

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            LOGGER.exception(
                "Unhandled exception method=%s path=%s request_id=%s",
                request.method,
                request.url.path,
                request_id,
            )
            response = JSONResponse(
                status_code=500,
                content={"ok": False, "error": "Internal Server Error", "request_id": request_id},
            )
            _apply_cors_headers(request, response, server)
        duration_ms = (time.perf_counter() - start) * 1000.0

        response.headers["X-Request-ID"] = request_id
        LOGGER.info(
            "HTTP %s %s status=%s ms=%.1f request_id=%s",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            request_id,
        )
        return response

    @app.exception_handler(RelayError)
    async def relay_error_handler(request: Request, exc: RelayError):
        if exc.status_code >= 500:
            LOGGER.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
        else:
            LOGGER.info("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.get("/health")
    async def health_check():
        try:
            return await run_in_threadpool(pipeline.health)
        except RelayError as exc:
            LOGGER.warning("Health check failed: %s", exc.message)
            return JSONResponse(
                status_code=exc.status_code,
                content={
                    "ok": False,
                    "relayer": pipeline.relayer_address,
                    "chainId": context.chain.chain_id,
                    "error": exc.message,
                },
            )

    @app.post("/relay")
    async def relay(request: Request):
        raw = await _read_body(request, MAX_BODY_BYTES)
        relay_request = parse_relay_body(raw, expected_chain_id=context.chain.chain_id)
        result = await run_in_threadpool(pipeline.relay, relay_request)
        return result.to_dict()

    return app


__all__ = ["create_app"]
