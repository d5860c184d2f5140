"""
PantherEyes Agent FastAPI Application.

  GET  /health      → {"ok": true, "service": ...}
  POST /chat        → intent resolution + deterministic planner run
  GET  /tools/list  → MCP tool definitions
  GET  /tools/schema
  POST /tools/call  → run one MCP tool
"""

from __future__ import annotations

import logging

import uvicorn
from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from panthereyes.api.routes.chat import router as chat_router
from panthereyes.api.routes.health import router as health_router
from panthereyes.api.routes.tools import router as tools_router
from panthereyes.config import settings

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("panthereyes")

app = FastAPI(
    title="PantherEyes Agent",
    description="Deterministic security-policy agent — policy previews, diffs and dry-run ChangeSets",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)
app.include_router(chat_router)
app.include_router(tools_router)


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid payload"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    detail = first.get("msg", "is invalid")
    return f"Invalid payload: {location} {detail}" if location else f"Invalid payload: {detail}"


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.error(f"Validation Error on {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=400, content={"error": _validation_message(exc)})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return JSONResponse(status_code=404, content={"error": "Not found"})
    if exc.status_code == 405:
        return JSONResponse(status_code=405, content={"error": "Method not allowed"})
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


def run() -> None:
    uvicorn.run("panthereyes.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
