"""HTTP service exposing repository assessment over FastAPI."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..config import ConfigError, load_config
from ..orchestrator import Orchestrator
from ..report import report_to_dict
from ..urls import parse_repository_url


class AssessRequest(BaseModel):
    repo_url: str


class HealthResponse(BaseModel):
    status: str


def _default_orchestrator() -> Orchestrator:
    return Orchestrator(config=load_config())


def create_app(
    orchestrator_factory: Callable[[], Orchestrator] = _default_orchestrator,
) -> FastAPI:
    """Create the FastAPI application exposing repository assessment."""

    app = FastAPI(title="repohealth Service", version="1.0.0")

    async def get_orchestrator() -> Orchestrator:
        # One orchestrator per request; assessments share no state.
        return orchestrator_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/assess")
    async def assess(
        payload: AssessRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> Dict[str, Any]:
        request = parse_repository_url(payload.repo_url)

        def _run_assessment() -> Dict[str, Any]:
            return report_to_dict(orchestrator.assess_request(request))

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:  # pragma: no cover - fallback path when not in async context
            return _run_assessment()
        return await loop.run_in_executor(None, _run_assessment)

    @app.exception_handler(ValueError)
    async def value_error_handler(_: Any, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(ConfigError)
    async def config_error_handler(_: Any, exc: ConfigError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": f"Invalid configuration: {exc}"})

    return app


def run_service(
    host: str = "127.0.0.1", port: int = 8000
) -> None:  # pragma: no cover - integration path
    import uvicorn

    app = create_app()
    uvicorn.run(app, host=host, port=port)


__all__ = ["AssessRequest", "HealthResponse", "create_app", "run_service"]
