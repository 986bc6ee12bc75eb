"""
ksef/main.py
FastAPI application for the KSEF judging engine.
"""
import os
import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv

load_dotenv()

logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ksef import __version__
from ksef.config.judging_policy import judging_policy
from ksef.database import init_db, close_db
from ksef.errors import register_exception_handlers
from ksef.routes import router


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting KSEF judging engine...")
    logger.info(f"Judging policy: {judging_policy.to_dict()}")
    try:
        await init_db()
        logger.info("Database connected successfully")
    except Exception as e:
        logger.error(f"Failed to connect to database: {str(e)}")
        raise

    yield

    logger.info("Shutting down application...")
    await close_db()


app = FastAPI(
    title="KSEF Judging API",
    description="Judge assignment, scoring, promotion and rankings for the Kenya Science and Engineering Fair",
    version=__version__,
    docs_url="/docs" if os.getenv("ENVIRONMENT", "development") == "development" else None,
    lifespan=lifespan,
)

origins = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

register_exception_handlers(app)
app.include_router(router, prefix="/api")


@app.get("/health")
async def health():
    return {"status": "ok", "version": __version__}


if __name__ == "__main__":
    import uvicorn

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", 8000))
    reload = os.getenv("ENVIRONMENT", "development") == "development"

    logger.info(f"Starting server on {host}:{port} (reload={reload})")
    uvicorn.run("ksef.main:app", host=host, port=port, reload=reload, log_level="info")
