"""Event Web Service API - FastAPI binding for the FDSN event service.

Exposes the FDSN event methods (query, catalogs, contributors, version,
application.wadl) plus the legacy detail feed URL. Request handling lives in
SearchDispatcher; this module only adapts requests and responses.
"""

import logging
import os

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse, Response, StreamingResponse

from fdsnws.core.config import ServiceConfig
from fdsnws.core.errors import ServiceError
from fdsnws.core.response import ServiceResponse
from fdsnws.dispatcher import SearchDispatcher
from fdsnws.shell.config_loader import load_config
from fdsnws.shell.factory import create_index


log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _request_uri(request: Request) -> str:
    """Verbatim request target (path and query string)."""
    uri = request.url.path
    if request.url.query:
        uri += "?" + request.url.query
    return uri


def _to_response(result: ServiceResponse) -> Response:
    """Convert a dispatcher response; lazy bodies are streamed."""
    if isinstance(result.body, (list, tuple)):
        return Response(
            content="".join(result.body),
            status_code=result.status,
            media_type=result.media_type,
            headers=result.headers,
        )
    return StreamingResponse(
        result.body,
        status_code=result.status,
        media_type=result.media_type,
        headers=result.headers,
    )


def create_app(
    dispatcher: SearchDispatcher | None = None,
    config: ServiceConfig | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        dispatcher: Dispatcher to serve (built from config if not provided)
        config: Service configuration (loaded from CONFIG_PATH/env if not provided)

    Returns:
        Configured FastAPI app
    """
    if dispatcher is None:
        config = config or load_config()
        dispatcher = SearchDispatcher(create_index(config), config)
    config = dispatcher.config

    app = FastAPI(
        title="FDSN Event Web Service",
        description="Search the seismic event catalog",
        version=config.version,
    )

    # Search results are public and embeddable
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError) -> Response:
        if exc.body is None:
            return Response(status_code=exc.status)
        return PlainTextResponse(exc.body, status_code=exc.status)

    fdsn = config.fdsn_path

    @app.get(fdsn + "/query")
    def query(request: Request) -> Response:
        """Search for events, or fetch one event by eventid."""
        params = dict(request.query_params)
        return _to_response(dispatcher.query(params, _request_uri(request)))

    @app.get(fdsn + "/catalogs")
    def catalogs(request: Request) -> Response:
        return _to_response(dispatcher.catalogs(_request_uri(request)))

    @app.get(fdsn + "/contributors")
    def contributors(request: Request) -> Response:
        return _to_response(dispatcher.contributors(_request_uri(request)))

    @app.get(fdsn + "/version")
    def version() -> Response:
        return _to_response(dispatcher.version())

    @app.get(fdsn + "/application.wadl")
    def wadl() -> Response:
        return _to_response(dispatcher.wadl())

    @app.get(fdsn + "/application.json")
    def application_json(request: Request) -> Response:
        return _to_response(dispatcher.application_json(_request_uri(request)))

    @app.get(config.feed_path + "/detail/{name}")
    def detail(name: str, request: Request) -> Response:
        """Legacy detail feed: /detail/EVENTID.FORMAT"""
        eventid, _, format_name = name.rpartition(".")
        params = {"eventid": eventid, "format": format_name}
        if not eventid:
            params = {"eventid": format_name}
        if "callback" in request.query_params:
            params["callback"] = request.query_params["callback"]
        return _to_response(dispatcher.query(params, _request_uri(request)))

    @app.get("/health")
    def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy"}

    logger.info("Serving FDSN event service at %s", config.service_url)
    return app


app = create_app()
