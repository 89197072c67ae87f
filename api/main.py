import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from core import settings
from core.cors import CORSHeadersMiddleware
from core.db import Database, database_url
from core.errors import register_error_handlers
from core.logs import setup_logging
from posts import router as posts_router
from posts.repository import PostStore
from uploads import router as uploads_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.log_level())

    # One pool and one store per process, shared through app.state.
    db = Database(
        database_url(),
        min_size=settings.db_pool_min_size(),
        max_size=settings.db_pool_max_size(),
    )
    await db.connect()
    store = PostStore(db)
    await store.ensure_schema()
    app.state.post_store = store
    logger.info("blog_api_started upload_dir=%s", settings.upload_dir())
    try:
        yield
    finally:
        await db.close()
        logger.info("blog_api_stopped")


app = FastAPI(title="Blog API", description="API for managing blog posts.", lifespan=lifespan)

app.add_middleware(CORSHeadersMiddleware, allow_origin=settings.cors_allow_origin())
register_error_handlers(app)

app.include_router(posts_router.router, tags=["blogs"])
app.include_router(uploads_router.router, tags=["uploads"])


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}
