from __future__ import annotations
import uuid
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from skillzcollab.config import get_environment_config, get_cors_config
from skillzcollab.errors import error_body
from skillzcollab.logging_setup import configure_logging
from skillzcollab.routes.system import router as system_router
from skillzcollab.routes.auth import router as auth_router
from skillzcollab.routes.admin import router as admin_router
from skillzcollab.routes.users import router as users_router
from skillzcollab.routes.brands import router as brands_router
from skillzcollab.routes.briefs import router as briefs_router
from skillzcollab.routes.tags import router as tags_router
from skillzcollab.routes.submissions import router as submissions_router
from skillzcollab.routes.reactions import router as reactions_router
from skillzcollab.routes.portfolios import router as portfolios_router
from skillzcollab.routes.creatives import router as creatives_router
import structlog

configure_logging()
log = structlog.get_logger()
env = get_environment_config()

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    log.info("startup", env=env.name, version=env.app_version, git_sha=env.git_sha)
    yield
    # Shutdown
    log.info("shutdown")

app = FastAPI(
    title=f"{env.app_display_name} API",
    version=env.app_version,
    lifespan=lifespan,
    description=f"{env.app_display_name} API for brands, briefs and creative submissions",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if env.name == "dev" else get_cors_config().origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(system_router)
app.include_router(auth_router)
app.include_router(admin_router)
app.include_router(users_router)
app.include_router(brands_router)
app.include_router(briefs_router)
app.include_router(tags_router)
app.include_router(submissions_router)
app.include_router(reactions_router)
app.include_router(portfolios_router)
app.include_router(creatives_router)

@app.exception_handler(StarletteHTTPException)
async def http_error(request: Request, exc: StarletteHTTPException):
    if exc.status_code >= 500:
        log.error("request_failed", path=request.url.path, status=exc.status_code, detail=exc.detail)
    return JSONResponse(status_code=exc.status_code, content=error_body(exc), headers=getattr(exc, "headers", None))

@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError):
    errors = [{"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")} for e in exc.errors()]
    return JSONResponse(
        status_code=422,
        content={"success": False, "code": "VALIDATION_FAILED", "message": "Validation failed", "errors": errors},
    )

@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = rid
    structlog.contextvars.bind_contextvars(request_id=rid)
    try:
        response: Response = await call_next(request)
    finally:
        structlog.contextvars.clear_contextvars()
    response.headers["X-Request-ID"] = rid
    return response
