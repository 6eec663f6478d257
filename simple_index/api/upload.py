from __future__ import annotations

import logging
from contextlib import aclosing
from typing import AsyncIterator

from fastapi import APIRouter, Depends, Request
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException

from simple_index.core.dependencies import get_upload_pipeline
from simple_index.domain.errors import ProtocolError
from simple_index.domain.models import UploadPart
from simple_index.services.upload import UploadPipeline

logger = logging.getLogger(__name__)
router = APIRouter()


async def iter_upload_parts(request: Request) -> AsyncIterator[UploadPart]:
    """
    Adapt a multipart request body into the pipeline's stream of parts.

    Plain form fields become parts without a filename. A malformed body
    raises ProtocolError.
    """
    try:
        form = await request.form()
    except (MultiPartException, StarletteHTTPException) as e:
        raise ProtocolError(f"Malformed multipart body: {e}") from e

    try:
        for field_name, value in form.multi_items():
            if isinstance(value, UploadFile):
                content = await value.read()
                yield UploadPart(field_name=field_name, filename=value.filename, content=content)
            else:
                yield UploadPart(field_name=field_name)
    finally:
        await form.close()


@router.post("/upload")
async def upload_package(
    request: Request,
    pipeline: UploadPipeline = Depends(get_upload_pipeline),
) -> dict:
    """
    Accept one or more artifacts as multipart file parts.

    Every file part ending with the configured extension (``.whl`` by
    default) is stored and registered; other parts are ignored.
    """
    async with aclosing(iter_upload_parts(request)) as parts:
        results = await pipeline.process(parts)
    if not results:
        logger.warning("Upload request contained no accepted artifacts")
    return {
        "status": "ok",
        "uploaded": [r.model_dump() for r in results],
    }
