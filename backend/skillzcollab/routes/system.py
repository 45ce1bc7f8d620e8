from __future__ import annotations
from fastapi import APIRouter, Request
from datetime import datetime, timezone
from skillzcollab.config import get_environment_config

router = APIRouter()

ENDPOINTS = {
    "auth": "/api/auth",
    "admin": "/api/admin",
    "users": "/api/users",
    "brands": "/api/brands",
    "briefs": "/api/briefs",
    "tags": "/api/tags",
    "submissions": "/api/submissions",
    "reactions": "/api/reactions",
    "portfolios": "/api/portfolios",
    "creatives": "/api/creatives",
}

@router.get("/")
async def index():
    env = get_environment_config()
    return {"name": env.app_display_name, "version": env.app_version, "endpoints": ENDPOINTS}

@router.get("/health")
async def health(request: Request):
    return {
        "status": "ok",
        "env": get_environment_config().name,
        "time": datetime.now(timezone.utc).isoformat(),
        "request_id": request.headers.get("x-request-id") or request.state.request_id,
    }

@router.get("/version")
async def version():
    env = get_environment_config()
    return {
        "name": env.app_name,
        "version": env.app_version,
        "git_sha": env.git_sha,
        "build": "docker",
    }
