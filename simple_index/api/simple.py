from __future__ import annotations

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import FileResponse, HTMLResponse
from fastapi.templating import Jinja2Templates

from simple_index.core.dependencies import get_blob_store, get_registry
from simple_index.domain.registry import ReleaseRegistry
from simple_index.storage.blob_store import BlobStore

logger = logging.getLogger(__name__)
router = APIRouter()

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parents[1] / "templates"))


# ---------------------------------------------------------------------------
# 1. GET /simple/
# ---------------------------------------------------------------------------

@router.get("/simple/", response_class=HTMLResponse)
async def list_packages(
    request: Request,
    registry: ReleaseRegistry = Depends(get_registry),
) -> HTMLResponse:
    """
    Directory listing of every package name.
    """
    names = await registry.list_packages()
    return templates.TemplateResponse(
        request,
        "simple.html",
        {"title": "Package Index", "names": names},
    )


# ---------------------------------------------------------------------------
# 2. GET /simple/{package}/
# ---------------------------------------------------------------------------

@router.get("/simple/{package}/", response_class=HTMLResponse)
async def package_details(
    package: str,
    request: Request,
    registry: ReleaseRegistry = Depends(get_registry),
) -> HTMLResponse:
    """
    Release listing for one package, newest first. Unknown packages raise
    NotFound, which the application maps to 404.
    """
    pkg = await registry.get_package(package)
    return templates.TemplateResponse(
        request,
        "package.html",
        {"title": f"{pkg.name} Versions", "package": pkg},
    )


# ---------------------------------------------------------------------------
# 3. Blob download (target of the links on the release listing)
# ---------------------------------------------------------------------------

@router.get("/packages/{package}/{filename}")
async def download_package(
    package: str,
    filename: str,
    registry: ReleaseRegistry = Depends(get_registry),
    blobs: BlobStore = Depends(get_blob_store),
) -> FileResponse:
    """
    Serve the stored artifact bytes for a registered release.
    """
    if not await registry.has_release(package, filename):
        raise HTTPException(status_code=404, detail="Release not found")

    path = blobs.path_for(package, filename)
    if not path.is_file():
        logger.warning(f"Release {package}/{filename} is registered but its blob is missing")
        raise HTTPException(status_code=404, detail="Package file not found on disk")

    return FileResponse(
        path=str(path),
        filename=filename,
        media_type="application/octet-stream",
    )
