"""FastAPI application serving the live model, graph and diagrams."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import asdict
from pathlib import Path
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..coordinator import AnalysisCoordinator
from ..logging import get_logger

logger = get_logger("service")


class HealthResponse(BaseModel):
    status: str
    files: int
    stale: bool


class StatusResponse(BaseModel):
    mode: Optional[str] = None
    accepted: Optional[bool] = None
    file_count: int = 0
    skipped: int = 0
    reason: Optional[str] = None
    stale: bool
    recent_changes: List[str] = []


class MergeRequest(BaseModel):
    type: str
    markup: str
    description: Optional[str] = None


class DiagramResponse(BaseModel):
    id: str
    category: str
    title: str
    description: str
    markup: str
    labels: List[str]
    priority: int


class DeleteResponse(BaseModel):
    status: str
    id: str


class AnalyzeRequest(BaseModel):
    paths: Optional[List[str]] = None
    full: bool = False


class AnalyzeResponse(BaseModel):
    status: str
    mode: str


def create_app(
    coordinator_factory: Callable[[], AnalysisCoordinator],
    *,
    analyze_on_startup: bool = False,
) -> FastAPI:
    """Create the FastAPI application around a single coordinator.

    The factory is invoked once; every request shares the resulting
    coordinator so that merges and analyses act on the same live state.
    """

    coordinator = coordinator_factory()

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        if analyze_on_startup:
            coordinator.request_analysis(stale=True)
        yield
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, coordinator.close)

    app = FastAPI(title="Cartograph Service", version="1.0.0", lifespan=lifespan)
    app.state.coordinator = coordinator

    async def get_coordinator(request: Request) -> AnalysisCoordinator:
        return request.app.state.coordinator

    @app.get("/health", response_model=HealthResponse)
    async def health(
        coordinator: AnalysisCoordinator = Depends(get_coordinator),
    ) -> HealthResponse:
        return HealthResponse(
            status="ok", files=len(coordinator.model.files), stale=coordinator.is_stale()
        )

    @app.get("/api/status", response_model=StatusResponse)
    async def status(
        coordinator: AnalysisCoordinator = Depends(get_coordinator),
    ) -> StatusResponse:
        outcome = coordinator.last_outcome
        details: Dict[str, Any] = asdict(outcome) if outcome is not None else {}
        return StatusResponse(
            stale=coordinator.is_stale(),
            recent_changes=coordinator.recent_changes,
            **details,
        )

    @app.get("/api/model")
    async def model(
        coordinator: AnalysisCoordinator = Depends(get_coordinator),
    ) -> Dict[str, Any]:
        return coordinator.model.to_dict()

    @app.get("/api/graph")
    async def graph(
        coordinator: AnalysisCoordinator = Depends(get_coordinator),
    ) -> Dict[str, Any]:
        return coordinator.graph.to_dict()

    @app.get("/api/diagrams")
    async def diagrams(
        coordinator: AnalysisCoordinator = Depends(get_coordinator),
    ) -> Dict[str, Any]:
        return coordinator.diagrams.to_dict()

    @app.get("/api/diagrams/{diagram_id}", response_model=DiagramResponse)
    async def diagram(
        diagram_id: str,
        coordinator: AnalysisCoordinator = Depends(get_coordinator),
    ) -> DiagramResponse:
        record = coordinator.diagrams.get(diagram_id)
        if record is None:
            raise HTTPException(status_code=404, detail=f"Diagram '{diagram_id}' not found")
        return DiagramResponse(**record.to_dict())

    @app.post("/api/diagrams", response_model=DiagramResponse)
    async def merge(
        payload: MergeRequest,
        coordinator: AnalysisCoordinator = Depends(get_coordinator),
    ) -> DiagramResponse:
        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(
            None, coordinator.merge_diagram, payload.type, payload.markup, payload.description
        )
        if not result.ok or result.record is None:
            raise HTTPException(status_code=400, detail=result.error or "Diagram rejected")
        return DiagramResponse(**result.record.to_dict())

    @app.delete("/api/diagrams/{diagram_id}", response_model=DeleteResponse)
    async def delete(
        diagram_id: str,
        coordinator: AnalysisCoordinator = Depends(get_coordinator),
    ) -> DeleteResponse:
        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(None, coordinator.delete_diagram, diagram_id)
        if not result.ok:
            raise HTTPException(status_code=404, detail=result.error)
        return DeleteResponse(status="deleted", id=diagram_id)

    @app.post("/api/analyze", response_model=AnalyzeResponse, status_code=202)
    async def analyze(
        payload: AnalyzeRequest,
        coordinator: AnalysisCoordinator = Depends(get_coordinator),
    ) -> AnalyzeResponse:
        stale = payload.full or coordinator.is_stale()
        mode = coordinator.request_analysis(payload.paths, stale=stale)
        return AnalyzeResponse(status="accepted", mode=mode)

    @app.exception_handler(FileNotFoundError)
    async def file_not_found_handler(
        _: Any, exc: FileNotFoundError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    return app


def run_service(
    root: str | Path = ".", host: str = "127.0.0.1", port: int = 3333
) -> None:  # pragma: no cover - integration path
    import uvicorn

    app = create_app(lambda: AnalysisCoordinator(root), analyze_on_startup=True)
    logger.info("Serving %s on http://%s:%d", Path(root).resolve(), host, port)
    uvicorn.run(app, host=host, port=port, log_level="warning")


__all__ = ["create_app", "run_service"]
