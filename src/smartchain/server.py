"""HTTP endpoint for an :class:`~smartchain.core.app.App`.

``create_server(app)`` builds a FastAPI application:

- ``GET /``: self description, JSON by default, ``?text`` or ``?html``
  switch the representation;
- ``GET|POST /{route}``: runs the route. Arguments are collected from the
  query string (repeated keys become lists), from a JSON object body and from
  the configured ``allowed_request_headers`` (header names lowercased). Later
  sources override earlier ones;
- the :class:`~smartchain.core.response.Response` maps 1:1 onto status code,
  body and media type; configured ``response_headers`` are added.
- with ``allowed_origins`` configured, a request whose ``Origin`` header is
  not listed is rejected with 403 before it reaches the route.

The lifespan initializes the app when needed and deinitializes it on
shutdown. ``serve(app)`` runs it under uvicorn.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Dict

import uvicorn
from fastapi import FastAPI, Request
from fastapi import Response as HTTPResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse

from smartchain.core.app import App
from smartchain.core.response import Response, ResponseCode

__all__ = ["create_server", "serve"]

logger = logging.getLogger("smartchain.server")


def _query_args(request: Request) -> Dict[str, Any]:
    args: Dict[str, Any] = {}
    for key in request.query_params.keys():
        values = request.query_params.getlist(key)
        args[key] = values if len(values) > 1 else values[0]
    return args


async def _body_args(request: Request) -> Dict[str, Any]:
    if request.method != "POST":
        return {}
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        payload = await request.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


def _to_http(response: Response, headers: Dict[str, str]) -> HTTPResponse:
    if response.code == ResponseCode.NO_CONTENT:
        return HTTPResponse(status_code=response.code, headers=headers)
    return HTTPResponse(
        content=response.body(),
        status_code=response.code,
        media_type=response.type,
        headers=headers,
    )


def create_server(app: App) -> FastAPI:
    server_config = app.config.server

    @asynccontextmanager
    async def lifespan(api: FastAPI):
        if not app.initialized:
            await app.init()
        try:
            yield
        finally:
            if app.initialized:
                await app.deinit()

    api = FastAPI(
        title=app.name,
        description=app.description,
        version=app.version,
        lifespan=lifespan,
    )

    api.add_middleware(
        CORSMiddleware,
        allow_origins=server_config.allowed_origins or ["*"],
        allow_methods=["GET", "POST"],
        allow_headers=server_config.allowed_request_headers or ["*"],
    )

    allowed_headers = [name.lower() for name in server_config.allowed_request_headers]
    response_headers = dict(server_config.response_headers)
    allowed_origins = set(server_config.allowed_origins)

    @api.middleware("http")
    async def check_origin(request: Request, call_next):
        origin = request.headers.get("origin")
        if allowed_origins and origin and origin not in allowed_origins:
            logger.warning("rejected origin %s", origin)
            return PlainTextResponse("origin not allowed", status_code=ResponseCode.FORBIDDEN)
        return await call_next(request)

    @api.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        client = request.client.host if request.client else "-"
        logger.info(
            "%s %s %s -> %s (%.2f ms)",
            client,
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - started) * 1000,
        )
        return response

    @api.get("/", include_in_schema=False)
    async def describe(request: Request):
        if "html" in request.query_params:
            return HTMLResponse(app.to_html(), headers=response_headers)
        if "text" in request.query_params:
            return PlainTextResponse(app.to_text(), headers=response_headers)
        return JSONResponse(app.to_json(), headers=response_headers)

    @api.api_route("/{route_name:path}", methods=["GET", "POST"])
    async def execute(route_name: str, request: Request):
        args = _query_args(request)
        args.update(await _body_args(request))
        for name in allowed_headers:
            if name in request.headers:
                args[name] = request.headers[name]
        result = await app.execute(route_name.strip("/"), args)
        return _to_http(result, response_headers)

    return api


def serve(app: App) -> None:
    """Run the HTTP endpoint in the foreground."""
    server_config = app.config.server
    uvicorn.run(create_server(app), host=server_config.host, port=server_config.port)
