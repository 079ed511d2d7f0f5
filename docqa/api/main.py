"""FastAPI application, main entry point."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from docqa.api.routers.v1 import router as v1_router
from docqa.api.schemas import ErrorResponse, HealthResponse
from docqa.config import get_settings
from docqa.errors import DocQAError
from docqa.logger import get_logger, setup_logging

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    settings.ensure_dirs()
    logger.info("docqa API starting", environment=settings.environment)
    yield
    logger.info("docqa API shutting down")


app = FastAPI(
    title="docqa",
    description="Question answering over uploaded PDF documents",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(v1_router)


@app.exception_handler(DocQAError)
async def docqa_error_handler(request: Request, exc: DocQAError) -> JSONResponse:
    log = logger.warning if exc.status_code < 500 else logger.error
    log("Request failed", path=request.url.path, kind=exc.kind, error=exc.message, **exc.context)
    body = ErrorResponse(**exc.to_dict())
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


# ── Health ───────────────────────────────────────────────────────────────────


@app.get("/health", response_model=HealthResponse)
async def health():
    return HealthResponse(status="ok", environment=get_settings().environment)


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run("docqa.api.main:app", host=settings.api_host, port=settings.api_port)
