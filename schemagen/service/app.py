"""FastAPI application entrypoint for schemagen service mode."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, List, Optional

import uvicorn
from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..discovery import DiscoveryResult
from ..errors import ConfigurationError
from ..models import RunReport
from ..orchestrator import Orchestrator


class GenerateRequest(BaseModel):
    roots: List[str]
    output_dir: str


class ClassResult(BaseModel):
    name: str
    state: str
    stage: str
    path: Optional[str] = None
    cause: Optional[str] = None


class GenerateResponse(BaseModel):
    output_dir: str
    succeeded: bool
    classes: List[ClassResult]


class DiscoverRequest(BaseModel):
    roots: List[str]


class DiscoveredClass(BaseModel):
    name: str
    source: str


class DiscoverResponse(BaseModel):
    classes: List[DiscoveredClass]
    failures: List[ClassResult]


class HealthResponse(BaseModel):
    status: str


def _default_orchestrator() -> Orchestrator:
    return Orchestrator()


def create_app(
    orchestrator_factory: Callable[[], Orchestrator] = _default_orchestrator,
) -> FastAPI:
    """Create the FastAPI application exposing schemagen operations."""

    app = FastAPI(title="Schemagen Service", version="1.0.0")

    async def get_orchestrator() -> Orchestrator:
        # Fresh orchestrator per request; runs share no state.
        return orchestrator_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/generate", response_model=GenerateResponse)
    async def generate(
        payload: GenerateRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> GenerateResponse:
        def _run() -> RunReport:
            return orchestrator.run(payload.roots, payload.output_dir)

        loop = asyncio.get_running_loop()
        report = await loop.run_in_executor(None, _run)
        return GenerateResponse(**report.as_dict())

    @app.post("/discover", response_model=DiscoverResponse)
    async def discover(
        payload: DiscoverRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> DiscoverResponse:
        def _run() -> DiscoveryResult:
            return orchestrator.discover(payload.roots)

        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(None, _run)
        return DiscoverResponse(
            classes=[
                DiscoveredClass(name=descriptor.qualified_name, source=str(descriptor.source))
                for descriptor in result.descriptors
            ],
            failures=[
                ClassResult(
                    name=failure.qualified_name,
                    state=failure.state,
                    stage=failure.stage.value,
                    cause=failure.cause,
                )
                for failure in result.failures
            ],
        )

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(
        _: Any, exc: ConfigurationError
    ) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def run_service(host: str = "127.0.0.1", port: int = 8000) -> None:  # pragma: no cover
    uvicorn.run(create_app(), host=host, port=port)


__all__ = ["create_app", "run_service"]
