"""FastAPI application entrypoint for includecheck service mode."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..config import config_from_mapping
from ..diagnostics import count_warnings
from ..engine import AnalysisResult, IncludeChecker
from ..readers import MappingReader
from ..report import exit_code


class CheckRequest(BaseModel):
    files: Dict[str, str]
    paths: Optional[List[str]] = None
    config: Dict[str, Any] = Field(default_factory=dict)


class CheckSummary(BaseModel):
    unused: int
    warnings: int
    exit_code: int


class CheckResponse(BaseModel):
    diagnostics: List[Dict[str, Any]]
    summary: CheckSummary


class HealthResponse(BaseModel):
    status: str


def _run_check(payload: CheckRequest) -> AnalysisResult:
    settings = dict(payload.config)
    # The in-memory tree has no disk location for a cache file.
    settings.pop("cache", None)
    config = config_from_mapping(settings, Path("."))
    reader = MappingReader(payload.files)
    paths = payload.paths if payload.paths is not None else reader.paths()
    return IncludeChecker(config, reader=reader).run(paths)


def create_app() -> FastAPI:
    """Create the FastAPI application exposing includecheck operations."""
    app = FastAPI(title="includecheck service", version="1.0.0")

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/check", response_model=CheckResponse)
    async def check(payload: CheckRequest) -> CheckResponse:
        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(None, _run_check, payload)
        diagnostics = result.diagnostics
        return CheckResponse(
            diagnostics=[item.to_dict() for item in diagnostics],
            summary=CheckSummary(
                unused=len(result.unused),
                warnings=count_warnings(diagnostics),
                exit_code=exit_code(diagnostics),
            ),
        )

    @app.exception_handler(RuntimeError)
    async def runtime_error_handler(
        _: Any, exc: RuntimeError
    ) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def run_service(
    host: str = "127.0.0.1", port: int = 8000
) -> None:  # pragma: no cover - integration path
    try:
        import uvicorn
    except ModuleNotFoundError as exc:  # pragma: no cover - optional dependency
        raise RuntimeError(
            "uvicorn is required to run the service. Install it with `pip install includecheck[service]`."
        ) from exc

    uvicorn.run(create_app(), host=host, port=port)
