"""FastAPI application exposing the reverse proxy.

Endpoints:
    GET  /health              -- Health check
    GET  /test                -- Ping the upstream and report reachability
    GET  /swagger/doc.json    -- Swagger document (YAML converted to JSON)
    GET  /swagger/index.html  -- Swagger UI
    *    /{path}              -- Forwarded to the upstream API
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import yaml
from fastapi import FastAPI, Request, Response
from fastapi.openapi.docs import get_swagger_ui_html
from fastapi.responses import JSONResponse

from binproxy import __version__
from binproxy.config.settings import Settings
from binproxy.proxy.errors import ProxyError, UpstreamUnavailableError
from binproxy.proxy.forwarder import Forwarder
from binproxy.proxy.models import InboundRequest, ProxiedResponse, encode_headers
from binproxy.proxy.translator import ForwardingTranslator, cors_headers
from binproxy.utils.helpers import utc_timestamp

logger = logging.getLogger(__name__)

SERVICE_NAME = "binance-proxy"
PROXY_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"]


def to_response(proxied: ProxiedResponse) -> Response:
    """Convert a ProxiedResponse into a Starlette response, keeping repeated headers."""
    response = Response(content=proxied.body, status_code=proxied.status_code)
    response.raw_headers = encode_headers(
        [(key.lower(), value) for key, value in proxied.headers]
    )
    return response


async def read_inbound(request: Request) -> InboundRequest:
    """Capture the parts of a Starlette request the translator needs."""
    body = await request.body()
    return InboundRequest(
        method=request.method,
        path=request.url.path,
        query=list(request.query_params.multi_items()),
        headers=list(request.headers.items()),
        body=body or None,
    )


def create_app(
    forwarder: Forwarder,
    settings: Optional[Settings] = None,
    translator: Optional[ForwardingTranslator] = None,
) -> FastAPI:
    """Create the FastAPI proxy application.

    Args:
        forwarder: HTTP forwarder for the upstream API.
        settings: Proxy settings (defaults from the environment).
        translator: Pre-built translator (built from settings if None).

    Returns:
        Configured FastAPI application.
    """
    settings = settings or Settings()
    translator = translator or ForwardingTranslator(
        forwarder,
        api_prefix=settings.api_prefix,
        symbols_param=settings.symbols_param,
        user_agent=settings.user_agent,
        cors_max_age=settings.cors_max_age,
        strict_decompression=settings.strict_decompression,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await forwarder.close()

    app = FastAPI(
        title="Binance Proxy",
        description="Transparent reverse proxy for the Binance REST API",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    # --- CORS ---

    @app.middleware("http")
    async def cors_middleware(request: Request, call_next):
        if request.method == "OPTIONS":
            return to_response(translator.preflight())
        response = await call_next(request)
        for key, value in cors_headers(settings.cors_max_age):
            response.headers[key] = value
        return response

    @app.exception_handler(ProxyError)
    async def proxy_error_handler(request: Request, exc: ProxyError):
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_payload(),
            headers=dict(cors_headers(settings.cors_max_age)),
        )

    # --- Health ---

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "service": SERVICE_NAME,
            "time": utc_timestamp(),
            "binance_url": forwarder.base_url,
        }

    @app.get("/test")
    async def test_connection():
        try:
            status = await forwarder.ping()
        except UpstreamUnavailableError as e:
            return JSONResponse(
                status_code=503,
                content={"status": "error", "message": e.message},
            )
        return {
            "status": "ok",
            "binance_url": forwarder.base_url,
            "http_status": status,
            "message": "Connection to upstream established",
        }

    # --- Documentation ---

    @app.get("/swagger/doc.json")
    async def swagger_doc():
        path = settings.get_swagger_path()
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as e:
            logger.error("Could not read %s: %s", path, e)
            return JSONResponse(
                status_code=500,
                content={"error": f"Could not read swagger file: {e}"},
            )
        try:
            doc = yaml.safe_load(raw)
        except yaml.YAMLError as e:
            logger.error("Invalid YAML in %s: %s", path, e)
            return JSONResponse(
                status_code=500,
                content={"error": f"Could not convert YAML to JSON: {e}"},
            )
        if not isinstance(doc, dict) or not doc:
            return JSONResponse(status_code=500, content={"error": "Converted YAML is empty"})
        return doc

    @app.get("/swagger/index.html", include_in_schema=False)
    async def swagger_ui():
        return get_swagger_ui_html(
            openapi_url="/swagger/doc.json",
            title="Binance Proxy - Swagger UI",
            swagger_ui_parameters={"defaultModelsExpandDepth": -1},
        )

    # --- Proxy (must stay last) ---

    @app.api_route("/{path:path}", methods=PROXY_METHODS, include_in_schema=False)
    async def proxy(request: Request):
        inbound = await read_inbound(request)
        proxied = await translator.forward(inbound)
        return to_response(proxied)

    return app
