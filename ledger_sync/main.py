# ledger_sync/main.py
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
import logging

from ledger_sync.config import settings
from ledger_sync.database import init_db
from ledger_sync.exceptions import LedgerSyncError, SchemaValidationError, error_body
from ledger_sync.logging_setup import setup_logging

# Routers
from ledger_sync.routes.onec import router as onec_router
from ledger_sync.routes.onec_orders import router as onec_orders_router
from ledger_sync.routes.sync_runs import router as sync_runs_router
from ledger_sync.routes.marketplace import router as marketplace_router

setup_logging(settings)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Development schema bootstrap; production databases are migrated with alembic
    init_db()
    yield


app = FastAPI(title="Ledger Sync API", version="1.0.0", lifespan=lifespan)

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Error handlers
@app.exception_handler(SchemaValidationError)
async def schema_validation_handler(request: Request, exc: SchemaValidationError):
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder({"error": exc.message, "details": exc.details}),
    )


@app.exception_handler(LedgerSyncError)
async def ledger_sync_error_handler(request: Request, exc: LedgerSyncError):
    if exc.status_code == 401:
        return JSONResponse(status_code=401, content={"error": exc.message})
    return JSONResponse(status_code=exc.status_code, content=error_body(exc))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content=jsonable_encoder({"error": "Validation error", "details": exc.errors()}),
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# Router registration
app.include_router(onec_router)
app.include_router(onec_orders_router)
app.include_router(sync_runs_router)
app.include_router(marketplace_router)


@app.get("/")
def read_root():
    return {"message": "Ledger Sync API is running"}
