"""FastAPI application exposing the insurance FAQ workflow."""

from __future__ import annotations

from uuid import uuid4

from fastapi import Depends, FastAPI, Request, status
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from policyqa.api.schemas import CitationModel, QueryRequest, QueryResponse
from policyqa.config import Settings, get_settings
from policyqa.errors import (
    GenerationError,
    IndexUnavailableError,
    InvalidRequestError,
    ResourceNotFoundError,
    UpstreamDependencyError,
)
from policyqa.metrics.observability import bind_correlation_id, clear_correlation_id, configure_logging, get_logger
from policyqa.models import WorkflowResult
from policyqa.services.workflow import InsuranceFaqWorkflow

_ERROR_STATUS = {
    ResourceNotFoundError.code: status.HTTP_404_NOT_FOUND,
    IndexUnavailableError.code: status.HTTP_503_SERVICE_UNAVAILABLE,
    InvalidRequestError.code: status.HTTP_422_UNPROCESSABLE_ENTITY,
    GenerationError.code: status.HTTP_502_BAD_GATEWAY,
    UpstreamDependencyError.code: status.HTTP_502_BAD_GATEWAY,
}


def create_app(*, settings: Settings | None = None, workflow: InsuranceFaqWorkflow | None = None) -> FastAPI:
    settings = settings or get_settings()
    workflow = workflow or InsuranceFaqWorkflow.from_settings(settings)

    configure_logging()
    logger = get_logger("api")
    app = FastAPI(title="policyqa API", version="0.1.0")
    app.state.workflow = workflow

    @app.middleware("http")
    async def add_correlation_id(request: Request, call_next):  # type: ignore[override]
        correlation_id = request.headers.get("X-Request-ID", uuid4().hex)
        request.state.correlation_id = correlation_id
        bind_correlation_id(correlation_id)
        try:
            response = await call_next(request)
        finally:
            clear_correlation_id()
        response.headers["X-Correlation-ID"] = correlation_id
        return response

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        correlation_id = getattr(request.state, "correlation_id", uuid4().hex)
        logger.error("unhandled.error", correlation_id=correlation_id, detail=str(exc))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"status": "error", "error": "Internal Server Error", "correlation_id": correlation_id},
        )

    def get_workflow(request: Request) -> InsuranceFaqWorkflow:
        return request.app.state.workflow

    # Plain ``def`` so the blocking workflow runs in the worker thread pool.
    @app.post("/query", response_model=QueryResponse)
    def query(payload: QueryRequest, service: InsuranceFaqWorkflow = Depends(get_workflow)) -> JSONResponse:
        result = service.run(payload, top_k=payload.top_k)
        body = _to_response(result)
        code = status.HTTP_200_OK if result.ok else _ERROR_STATUS.get(
            result.error_code or "", status.HTTP_500_INTERNAL_SERVER_ERROR
        )
        return JSONResponse(status_code=code, content=body.model_dump(exclude_none=True))

    @app.get("/metrics")
    async def metrics() -> Response:
        payload = generate_latest()
        return Response(content=payload, media_type=CONTENT_TYPE_LATEST)

    @app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        from policyqa import __version__

        return {"status": "ok", "version": __version__, "environment": settings.environment}

    @app.head("/healthz")
    async def healthcheck_head() -> Response:
        return Response(status_code=status.HTTP_200_OK)

    @app.get("/livez")
    async def liveness() -> dict[str, str]:
        return {"status": "alive"}

    @app.get("/healthz/ready")
    async def readiness() -> dict[str, str]:
        if settings.document_path.is_file():
            return {"status": "ready"}
        return {"status": "error", "detail": f"document not found: {settings.document_path}"}

    return app


def _to_response(result: WorkflowResult) -> QueryResponse:
    citations = [
        CitationModel(
            chunk_id=citation.chunk.chunk_id,
            score=citation.score,
            text=citation.chunk.text,
            language=citation.chunk.language,
            page=citation.chunk.chunk_metadata.get("page"),
        )
        for citation in result.citations
    ]
    return QueryResponse(
        status=result.status,
        answer=result.answer,
        error=result.error,
        error_code=result.error_code,
        citations=citations,
    )


app = create_app()
