import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from doctype_ui.core.config import settings
from doctype_ui.core.logging import configure_logging
from doctype_ui.api.routes import router as api_router

configure_logging()
log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    if settings.metadata_dir:
        log.info("Serving metadata from %s", settings.metadata_dir)
    elif settings.frappe_url:
        log.info("Serving metadata from %s", settings.frappe_url)
    else:
        log.warning("No metadata source configured; set METADATA_DIR or FRAPPE_URL")
    yield
    log.info("Shutting down API server...")


app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
    lifespan=lifespan
)
app.include_router(api_router, prefix="/v1")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("doctype_ui.main:app", host=settings.api_host, port=settings.api_port)
