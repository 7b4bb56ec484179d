from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError
import logging
import asyncio

from dropbin.api.endpoints import github, texts
from dropbin.core.config import settings
from dropbin.core.errors import TextError, Unavailable
from dropbin.db.base import init_db, dispose_db
from dropbin.core.cleanup_tasks import create_cleanup_task

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

cleanup_task = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    global cleanup_task

    await init_db()

    cleanup_task = create_cleanup_task()
    logger.info("Application startup complete")

    yield

    if cleanup_task:
        cleanup_task.cancel()
        try:
            await cleanup_task
        except asyncio.CancelledError:
            logger.info("Cleanup task cancelled")
    await dispose_db()
    logger.info("Application shutdown complete")


app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(TextError)
async def text_error_handler(request: Request, exc: TextError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


# a refused or timed-out connect surfaces as OSError / TimeoutError, not DBAPIError
@app.exception_handler(DBAPIError)
@app.exception_handler(OSError)
@app.exception_handler(asyncio.TimeoutError)
async def datastore_error_handler(request: Request, exc: Exception):
    logger.error(f"Datastore error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=Unavailable.status_code, content={"detail": "Datastore unavailable"})


app.include_router(texts.router, prefix="/api", tags=["texts"])
app.include_router(github.router, prefix="/api", tags=["github"])


@app.get("/")
async def root():
    return {"message": "Welcome to Dropbin API"}


@app.get("/health")
async def health():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("dropbin.main:app", host=settings.HOST, port=settings.PORT)
