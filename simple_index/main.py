import logging

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, PlainTextResponse

from simple_index.api.simple import router as simple_router, templates
from simple_index.api.upload import router as upload_router
from simple_index.core.dependencies import get_settings, get_upload_pipeline
from simple_index.domain.errors import NotFound, RegistryError

# Configure logging
logging.basicConfig(
    level=get_settings().log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


app = FastAPI(
    title="Simple PyPI Server",
    version="0.1.0",
    description="Minimal FastAPI-based package index serving PEP 503 style listings.",
)


@app.on_event("startup")
async def startup_event() -> None:
    """
    Load the registry snapshot (a corrupted snapshot aborts startup) and
    resolve uploads interrupted by a previous crash.
    """
    pipeline = await get_upload_pipeline()
    recovered = await pipeline.recover()
    if recovered:
        logger.info(f"Resolved {recovered} interrupted upload(s)")
    logger.info(f"Serving packages from {get_settings().data_dir}")


@app.exception_handler(RegistryError)
async def registry_error_handler(request: Request, exc: RegistryError) -> PlainTextResponse:
    """
    NotFound becomes 404; every other registry failure is an undifferentiated
    500. Full detail stays in the server log.
    """
    if isinstance(exc, NotFound):
        logger.warning(f"Not found: {request.method} {request.url.path}: {exc}")
        return PlainTextResponse("Not Found", status_code=404)
    logger.error(f"Error handling {request.method} {request.url.path}: {exc}", exc_info=exc)
    return PlainTextResponse("Internal Server Error", status_code=500)


@app.get("/", response_class=HTMLResponse)
async def index(request: Request) -> HTMLResponse:
    """
    Simple landing page so you can see something in a browser.
    """
    return templates.TemplateResponse(request, "index.html", {"title": "Simple PyPI Server"})


@app.get("/health")
async def health() -> dict:
    """
    Lightweight health check endpoint.
    """
    return {"status": "ok"}


app.include_router(simple_router, tags=["simple"])
app.include_router(upload_router, tags=["upload"])


if __name__ == "__main__":
    """
    Allow running `python -m simple_index.main` to start the Uvicorn server.
    """
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "simple_index.main:app",
        host=settings.host,
        port=settings.port,
    )
