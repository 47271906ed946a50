import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.database import Base, engine
from app.core.errors import ContractViolation, PersistenceError
from app.core.logging import setup_logging
from app.models.user import User  # noqa: F401
from app.models.group import Group  # noqa: F401
from app.models.membership import Membership  # noqa: F401
from app.models.post import Post  # noqa: F401
from app.models.comment import Comment  # noqa: F401

from app.api.routes.auth import router as auth_router
from app.api.routes.groups import router as groups_router
from app.api.routes.posts import router as posts_router

# SSE
from app.realtime.sse import router as sse_router

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

Base.metadata.create_all(bind=engine)

app = FastAPI(title="Groups API", version="0.1.0")

# CORS primero
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    allow_credentials=False,
)


@app.exception_handler(PersistenceError)
async def persistence_error_handler(request: Request, exc: PersistenceError):
    logger.error("persistence error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Almacenamiento no disponible"})


@app.exception_handler(ContractViolation)
async def contract_violation_handler(request: Request, exc: ContractViolation):
    logger.warning("invalid request on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=400, content={"detail": str(exc)})


# Routers después
app.include_router(auth_router)
app.include_router(groups_router)
app.include_router(posts_router)
app.include_router(sse_router)


@app.get("/")
def root():
    return {"status": "ok", "message": "Groups API"}


@app.get("/health")
def health():
    return {"ok": True}
