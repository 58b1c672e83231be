from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from commit_trail.application.use_cases import RepositoryCoordinator, open_repository
from commit_trail.domain.errors import (
    CacheCorrupt,
    CommandFailure,
    CommitTrailError,
    InvalidRepository,
    NotFound,
    ParseFailure,
)
from commit_trail.domain.models import Selection
from commit_trail.infrastructure.workspace import Workspace
from commit_trail.logging_config import configure_logging
from commit_trail.web.models import (
    CommitOut,
    DiffStatsOut,
    FileViewOut,
    HistoryOut,
    ProgressOut,
    RefreshOut,
    RepositoryOut,
    TreeOut,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if getattr(app.state, "coordinator", None) is None:
        # Served directly (`uvicorn commit_trail.web.api:app`), not via launch().
        configure_logging()
        repo_path = getattr(app.state, "repo_path", None)
        if repo_path is None:
            raise RuntimeError("app.state.repo_path is not set")
        app.state.coordinator = open_repository(repo_path, getattr(app.state, "settings", None))
    yield


app = FastAPI(title="commit-trail", lifespan=lifespan)


_STATUS_BY_ERROR: list[tuple[type[CommitTrailError], int]] = [
    (NotFound, 404),
    (InvalidRepository, 400),
    (CommandFailure, 502),
    (ParseFailure, 502),
    (CacheCorrupt, 500),
]


@app.exception_handler(CommitTrailError)
async def _engine_error(request: Request, exc: CommitTrailError) -> JSONResponse:
    status = next((code for kind, code in _STATUS_BY_ERROR if isinstance(exc, kind)), 500)
    return JSONResponse(status_code=status, content={"detail": str(exc)})


def _coordinator() -> RepositoryCoordinator:
    return app.state.coordinator


def _selection(rev: str, against: str | None) -> Selection:
    return Selection(to_sha=rev, from_sha=against or None)


@app.get("/api/history", response_model=HistoryOut)
async def history(sync: bool = Query(False, description="Synchronize before returning")):
    coordinator = _coordinator()
    shas = await (coordinator.synchronize_history() if sync else coordinator.cached_history())
    return HistoryOut(count=len(shas), shas=shas)


@app.get("/api/commits", response_model=list[CommitOut])
async def list_commits(
    offset: int = Query(0, ge=0),
    limit: int | None = Query(None, ge=1, le=500),
):
    commits = await _coordinator().commit_page(offset, limit)
    return [CommitOut.from_commit(c) for c in commits]


@app.get("/api/commits/{sha}", response_model=CommitOut)
async def get_commit(sha: str):
    return CommitOut.from_commit(await _coordinator().commit(sha))


@app.get("/api/commits/{sha}/stats", response_model=DiffStatsOut)
async def get_commit_stats(sha: str):
    return DiffStatsOut.from_stats(await _coordinator().diff_stats(sha))


@app.get("/api/tree", response_model=TreeOut)
async def get_tree(
    rev: str = Query(..., description="Target revision"),
    against: str | None = Query(None, description="Earlier revision to compare with"),
    browse: bool = Query(False, description="Tree without change status"),
):
    selection = Selection(to_sha=rev, from_sha=against or None, browse=browse)
    return TreeOut.from_view(await _coordinator().load_tree(selection))


@app.get("/api/diff", response_model=FileViewOut)
async def get_diff(
    rev: str = Query(..., description="Target revision"),
    path: str = Query(..., description="Repository-relative file path"),
    against: str | None = Query(None, description="Earlier revision to compare with"),
):
    return FileViewOut.from_view(await _coordinator().select_file(_selection(rev, against), path))


@app.get("/api/progress", response_model=ProgressOut)
async def get_progress():
    return ProgressOut.from_record(await _coordinator().progress())


@app.post("/api/progress/{sha}/toggle", response_model=ProgressOut)
async def toggle_progress(sha: str):
    if not sha.strip():
        raise HTTPException(status_code=400, detail="Empty commit identifier")
    return ProgressOut.from_record(await _coordinator().toggle_reviewed(sha))


@app.post("/api/checkout/{sha}", response_model=ProgressOut)
async def checkout(sha: str):
    return ProgressOut.from_record(await _coordinator().checkout(sha))


@app.post("/api/checkout-default", response_model=ProgressOut)
async def checkout_default():
    return ProgressOut.from_record(await _coordinator().checkout_default())


@app.post("/api/refresh", response_model=RefreshOut)
async def refresh():
    return RefreshOut(new_shas=await _coordinator().refresh_from_remote())


@app.get("/api/repositories", response_model=list[RepositoryOut])
async def list_repositories():
    workspace = Workspace(_coordinator().settings.home)
    return [RepositoryOut.from_repository(r) for r in workspace.list_repositories()]
