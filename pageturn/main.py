import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .database import init_db
from .errors import LedgerError
from .routers import creator, discover, engagement, reading
from .schemas import UserCreate, UserRead, UserUpdate
from .settings.config import settings
from .users import auth_backend, fastapi_users

logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
logger = logging.getLogger(__name__)

app = FastAPI(title="Pageturn")

# Enable CORS if needed
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Update for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ----------------------
# Route Includes
# ----------------------
app.include_router(reading.router)
app.include_router(engagement.router)
app.include_router(discover.router)
app.include_router(creator.router)

# Authentication Routes
app.include_router(
    fastapi_users.get_auth_router(auth_backend),
    prefix="/auth/jwt",
    tags=["auth"]
)
app.include_router(
    fastapi_users.get_register_router(UserRead, UserCreate),
    prefix="/auth",
    tags=["auth"]
)
app.include_router(
    fastapi_users.get_users_router(UserRead, UserUpdate),
    prefix="/users",
    tags=["users"]
)


# -----------------------------------------------------
# Ledger errors -> JSON with the matching status code.
# Duplicates never get here: the guard turns them into no-ops.
# -----------------------------------------------------
@app.exception_handler(LedgerError)
async def _ledger_error_handler(request: Request, exc: LedgerError):
    if exc.retryable:
        logger.warning("%s %s -> %s (%s)", request.method, request.url.path, exc.status_code, exc.detail)
    return JSONResponse(
        {"detail": exc.detail, "retryable": exc.retryable},
        status_code=exc.status_code,
    )


@app.on_event("startup")
async def on_startup():
    from . import models  # Required for SQLAlchemy model detection
    await init_db()
