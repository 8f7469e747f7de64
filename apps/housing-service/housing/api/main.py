"""
FastAPI app assembly: middleware and router wiring.
"""
import logging
import os
from fastapi import FastAPI, status
from starlette.requests import Request
from starlette.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

# Configure logging
LOG_LEVEL_NAME = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_LEVEL = getattr(logging, LOG_LEVEL_NAME, logging.INFO)
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)
logger.setLevel(LOG_LEVEL)
logger.info("app_startup: log_level=%s", LOG_LEVEL_NAME)


from housing.api.users import router as users_router
from housing.api.farms import router as farms_router
from housing.api.rooms import router as rooms_router
from housing.api.workers import router as workers_router
from housing.api.imports import router as imports_router
from housing.api.transfers import router as transfers_router
from housing.api.notifications import router as notifications_router
from housing.api.supervisors import router as supervisors_router
from housing.api.stock import router as stock_router
from housing.api.stock_transfers import router as stock_transfers_router
from housing.api.articles import router as articles_router
from housing.api.security_codes import router as security_codes_router
from housing.api.dashboard import router as dashboard_router
from housing.api.maintenance import router as maintenance_router
from housing.api.audits import router as audits_router

# Database schema is managed by Alembic migrations.

app = FastAPI(
    title="Farm Housing Service",
    description="API for managing farms, dormitory rooms, workers, stock and transfers of workers and stock.",
    version="1.0.0",
)

origins = [
    "http://localhost",
    "http://localhost:3000",
    "http://localhost:5173",
    "http://localhost:8000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Middleware: enforce read-only for unauthenticated requests
@app.middleware("http")
async def enforce_readonly_for_guests(request: Request, call_next):
    if request.method in ("POST", "PUT", "PATCH", "DELETE"):
        # In dev mode, allow; authentication is handled by route dependencies
        is_dev_mode = os.getenv("DEV_MODE", "false").lower() == "true"

        if not is_dev_mode:
            h = request.headers
            user_present = (
                h.get("x-auth-request-user")
                or h.get("x-auth-request-email")
                or h.get("x-forwarded-user")
                or h.get("x-forwarded-email")
            )
            if not user_present:
                return JSONResponse(
                    {"detail": "Guest mode is read-only. Sign in to perform changes."},
                    status_code=status.HTTP_401_UNAUTHORIZED,
                )
    return await call_next(request)


app.include_router(users_router)
app.include_router(farms_router)
app.include_router(rooms_router)
app.include_router(workers_router)
app.include_router(imports_router)
app.include_router(transfers_router)
app.include_router(notifications_router)
app.include_router(supervisors_router)
app.include_router(stock_router)
app.include_router(stock_transfers_router)
app.include_router(articles_router)
app.include_router(security_codes_router)
app.include_router(dashboard_router)
app.include_router(maintenance_router)
app.include_router(audits_router)


@app.get("/health")
def health_check():
    return {"status": "ok", "service": "housing-service"}
