import logging
import sqlite3

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from catalog_router import router as catalog_router
from db import connect_db
from db_migrations import apply_migrations
import element_catalog
from leaderboard_router import router as leaderboard_router
from save_router import router as save_router

app = FastAPI(title="Element Fusion service")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-API-Key"],
)
app.include_router(catalog_router)
app.include_router(leaderboard_router)
app.include_router(save_router)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


@app.exception_handler(HTTPException)
async def _http_error(request: Request, exc: HTTPException) -> JSONResponse:
    return _error(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error(400, "Request body must be a valid JSON object")


@app.exception_handler(sqlite3.OperationalError)
async def _backend_unavailable(request: Request, exc: sqlite3.OperationalError) -> JSONResponse:
    logging.exception("Database unavailable during %s %s", request.method, request.url.path)
    return _error(503, "Backend unavailable")


@app.exception_handler(Exception)
async def _internal_error(request: Request, exc: Exception) -> JSONResponse:
    logging.exception("Unhandled error during %s %s", request.method, request.url.path)
    return _error(500, "Internal server error")


@app.on_event("startup")
def _startup():
    conn = connect_db()
    try:
        apply_migrations(conn)
        conn.commit()
    finally:
        conn.close()

    catalog = element_catalog.default_catalog()
    if catalog.degraded:
        logging.warning("Serving degraded element catalog (%d elements)", catalog.size)
