"""FastAPI application serving the team dataset and applicant profile."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from teammap.common.errors import DatasetUnavailableError
from teammap.common.logging import log_event
from teammap.common.time_utils import utc_timestamp_z
from teammap.server.cache import DatasetCache, TeamDataset, applicant_profile

APP_NAME = "Team Map API"
APP_VERSION = "1.0.0"

logger = logging.getLogger("teammap.server")
router = APIRouter()


@dataclass(frozen=True)
class ServerSettings:
    team_path: Path
    applicant_path: Path
    cors_origins: list[str] = field(default_factory=list)
    environment: str = "development"

    @classmethod
    def from_config(cls, cfg: dict, data_dir: Path) -> "ServerSettings":
        server = cfg["server"]
        return cls(
            team_path=data_dir / server["team_filename"],
            applicant_path=data_dir / server["applicant_filename"],
            cors_origins=list(server["cors_origins"]),
            environment=str(server["environment"]),
        )


def get_team(request: Request) -> TeamDataset:
    return request.app.state.team_cache.get()


def get_applicant(request: Request) -> dict:
    return request.app.state.applicant_cache.get()


@router.get("/api/team")
async def list_team(team: TeamDataset = Depends(get_team)):
    return {"success": True, "data": {"metadata": team.metadata, "team": team.team}}


@router.get("/api/team/{member_id}")
async def get_team_member(member_id: str, team: TeamDataset = Depends(get_team)):
    member = team.find(member_id)
    if member is None:
        return JSONResponse(status_code=404, content={"success": False, "error": "Team member not found"})
    return {"success": True, "data": member}


@router.get("/api/applicant")
async def get_applicant_profile(applicant: dict = Depends(get_applicant)):
    return {"success": True, "data": applicant}


@router.get("/api/health")
async def health_check(request: Request):
    return {
        "status": "ok",
        "message": f"{APP_NAME} is running",
        "timestamp": utc_timestamp_z(),
        "environment": request.app.state.settings.environment,
    }


@router.get("/")
async def root():
    return {
        "message": f"Welcome to {APP_NAME}",
        "documentation": "Visit /api/health to check server status",
        "version": APP_VERSION,
    }


async def _dataset_unavailable(request: Request, exc: DatasetUnavailableError) -> JSONResponse:
    log_event(
        logger,
        f"{request.method} {request.url.path} failed: {exc}",
        stage="serve",
        event="DATASET_UNAVAILABLE",
        status="error",
        error_code=exc.error_code,
        level=logging.ERROR,
    )
    return JSONResponse(status_code=500, content={"success": False, "error": str(exc)})


def create_app(settings: ServerSettings) -> FastAPI:
    app = FastAPI(title=APP_NAME, version=APP_VERSION)
    app.state.settings = settings
    app.state.team_cache = DatasetCache(settings.team_path, "team", TeamDataset)
    app.state.applicant_cache = DatasetCache(settings.applicant_path, "applicant", applicant_profile)

    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_methods=["GET"],
            allow_headers=["*"],
        )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        response = await call_next(request)
        log_event(
            logger,
            f"{request.method} {request.url.path}",
            stage="serve",
            event="HTTP_REQUEST",
            status=str(response.status_code),
        )
        return response

    app.add_exception_handler(DatasetUnavailableError, _dataset_unavailable)
    app.include_router(router)
    return app
