"""FastAPI application exposing the Trove core over HTTP."""

import os
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.security.api_key import APIKeyHeader
from pydantic import ConfigDict, Field

from trove.config import load_config
from trove.core import (
    CoreConfig,
    EventCreationOptions,
    EventFile,
    EventId,
    EventLink,
    EventQuery,
    EventValidationFailed,
    NotInitialized,
    Trove,
)
from trove.core.types import TroveModel
from trove.utils.logging_config import get_logger, setup_logging

logger = get_logger(__name__)

# HTTP Status Codes
HTTP_CREATED = 201
HTTP_BAD_REQUEST = 400
HTTP_UNAUTHORIZED = 403
HTTP_NOT_FOUND = 404
HTTP_UNPROCESSABLE_ENTITY = 422
HTTP_SERVICE_UNAVAILABLE = 503

API_KEY_NAME = "X-API-Key"
api_key_header = APIKeyHeader(name=API_KEY_NAME, auto_error=False)


class CreateEventRequest(TroveModel):
    model_config = ConfigDict(extra="forbid")

    event_schema: dict[str, Any] = Field(alias="schema")
    payload: dict[str, Any]
    producer: str | None = None
    metadata: dict[str, Any] | None = None
    files: list[EventFile] | None = None
    links: list[EventLink] | None = None


async def get_api_key(api_key: str | None = Depends(api_key_header)) -> str | None:
    """Validate the API key header when API_KEY is configured.

    Raises:
        HTTPException: If API_KEY is set and the header does not match
    """
    expected = os.getenv("API_KEY")
    if not expected:
        return None
    if api_key and api_key == expected:
        return api_key
    raise HTTPException(
        status_code=HTTP_UNAUTHORIZED,
        detail="Could not validate API key",
    )


def get_core(request: Request) -> Trove:
    core: Trove | None = getattr(request.app.state, "trove", None)
    if core is None or not core.is_ready:
        raise HTTPException(status_code=HTTP_SERVICE_UNAVAILABLE, detail="Trove is not ready")
    return core


def _dump(model: TroveModel) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


def create_app(
    config: CoreConfig | None = None,
    core: Trove | None = None,
    configure_logging: bool = True,
) -> FastAPI:
    """Build the HTTP application.

    Args:
        config: Core configuration; loaded from $TROVE_CONFIG at startup if omitted
        core: A pre-built core (its plugins may already be registered)
        configure_logging: Whether startup should install the JSON log handlers
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        trove = core or Trove(config or load_config())
        if configure_logging:
            setup_logging(trove.config.logging.level, trove.config.logging.file)

        logger.info("Starting Trove HTTP API")
        await trove.initialize()
        app.state.trove = trove
        try:
            yield
        finally:
            logger.info("Starting application shutdown")
            await trove.shutdown()
            logger.info("Shutdown complete")

    app = FastAPI(
        title="Trove Events API",
        description="API for creating, reading and querying events",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def api_logging_middleware(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        start_time = datetime.now(UTC)
        response = await call_next(request)
        logger.info(
            "API request completed",
            extra={
                "req_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration": (datetime.now(UTC) - start_time).total_seconds(),
            },
        )
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        logger.warning("Invalid request format", extra={"errors": exc.errors()})
        return JSONResponse(
            status_code=HTTP_BAD_REQUEST,
            content={"error": "Invalid Request Format", "detail": jsonable_errors(exc)},
        )

    @app.exception_handler(EventValidationFailed)
    async def event_validation_handler(
        request: Request, exc: EventValidationFailed
    ) -> JSONResponse:
        return JSONResponse(
            status_code=HTTP_UNPROCESSABLE_ENTITY,
            content={
                "error": "Invalid Event Payload",
                "detail": [issue.to_dict() for issue in exc.errors],
            },
        )

    @app.exception_handler(NotInitialized)
    async def not_initialized_handler(request: Request, exc: NotInitialized) -> JSONResponse:
        return JSONResponse(
            status_code=HTTP_SERVICE_UNAVAILABLE, content={"error": str(exc)}
        )

    @app.get("/health")
    async def health_check(request: Request) -> JSONResponse:
        trove: Trove | None = getattr(request.app.state, "trove", None)
        if trove is None or not trove.is_ready:
            state = trove.state.value if trove else "uninitialized"
            return JSONResponse(
                status_code=HTTP_SERVICE_UNAVAILABLE,
                content={"status": "unavailable", "state": state},
            )
        return JSONResponse(content={"status": "ok", "state": trove.state.value})

    @app.post("/api/events", status_code=HTTP_CREATED, dependencies=[Depends(get_api_key)])
    async def create_event(
        body: CreateEventRequest,
        trove: Trove = Depends(get_core),
    ) -> JSONResponse:
        event = await trove.create_event(
            body.event_schema,
            body.payload,
            EventCreationOptions(
                producer=body.producer,
                files=body.files,
                links=body.links,
                metadata=body.metadata,
            ),
        )
        return JSONResponse(status_code=HTTP_CREATED, content=_dump(event))

    @app.get("/api/events/{event_id}", dependencies=[Depends(get_api_key)])
    async def get_event(
        event_id: str,
        version: int | None = None,
        trove: Trove = Depends(get_core),
    ) -> JSONResponse:
        event = await trove.get_event(EventId(id=event_id, version=version))
        if event is None:
            raise HTTPException(status_code=HTTP_NOT_FOUND, detail="Event not found")
        return JSONResponse(content=_dump(event))

    @app.post("/api/events/query", dependencies=[Depends(get_api_key)])
    async def query_events(
        query: EventQuery,
        trove: Trove = Depends(get_core),
    ) -> JSONResponse:
        events = await trove.query_events(query)
        return JSONResponse(content=[_dump(event) for event in events])

    @app.get("/api/files/{file_id}", dependencies=[Depends(get_api_key)])
    async def get_file(
        file_id: str,
        trove: Trove = Depends(get_core),
    ) -> JSONResponse:
        file = await trove.get_file(file_id)
        if file is None:
            raise HTTPException(status_code=HTTP_NOT_FOUND, detail="File not found")
        # Metadata only; content is served by the data route
        return JSONResponse(
            content=file.model_dump(
                mode="json", by_alias=True, exclude_none=True, exclude={"data"}
            )
        )

    @app.get("/api/files/{file_id}/data", dependencies=[Depends(get_api_key)])
    async def get_file_data(
        file_id: str,
        trove: Trove = Depends(get_core),
    ) -> Response:
        file = await trove.get_file(file_id)
        if file is None:
            raise HTTPException(status_code=HTTP_NOT_FOUND, detail="File not found")
        data = await trove.get_file_data(file_id)
        if isinstance(data, str):
            data = data.encode()
        return Response(content=data, media_type=file.content_type)

    return app


def jsonable_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]


app = create_app()
