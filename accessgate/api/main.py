from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from accessgate import __version__
from accessgate.common.logger import setup_logger
from accessgate.core.config import get_settings
from accessgate.api.routers import approvals, chat, escalations, health, request_state

settings = get_settings()

setup_logger(
    "accessgate",
    log_dir=settings.log_dir,
    level=settings.log_level,
    file_logging=settings.log_to_file,
)

app = FastAPI(
    title=settings.app_name,
    description="Access requests decided by a deterministic policy core",
    version=__version__,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.debug else settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(request_state.router, prefix="/api")
app.include_router(approvals.router, prefix="/api")
app.include_router(escalations.router, prefix="/api")
app.include_router(chat.router, prefix="/api")
app.include_router(health.router)


@app.get("/")
async def root():
    return {
        "name": settings.app_name,
        "version": __version__,
        "docs": "/docs" if settings.debug else None,
    }
