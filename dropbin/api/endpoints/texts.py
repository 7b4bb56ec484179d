import io
import logging
import zipfile
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request, Response, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from dropbin.core.config import settings
from dropbin.core.identifiers import IdentifierAllocator
from dropbin.core.security_middleware import (
    check_rate_limit,
    validate_content_size,
    add_security_headers,
    generate_etag,
    check_if_none_match
)
from dropbin.db.base import get_db
from dropbin.repositories.text_repository import TextRepository
from dropbin.schemas.text import Message, Text, TextCreate, TextCreated, TextLock, TextUpdate

logger = logging.getLogger(__name__)

router = APIRouter()


def get_text_repository(db: AsyncSession = Depends(get_db)) -> TextRepository:
    return TextRepository(db)


def get_allocator() -> IdentifierAllocator:
    return IdentifierAllocator()


def build_share_link(request: Request, text_id: str) -> str:
    base_url = settings.PUBLIC_BASE_URL or str(request.base_url)
    return f"{base_url.rstrip('/')}/link/{text_id}"


@router.post("/text", response_model=TextCreated, status_code=status.HTTP_201_CREATED)
async def create_text(
        payload: TextCreate,
        request: Request,
        repo: TextRepository = Depends(get_text_repository),
        allocator: IdentifierAllocator = Depends(get_allocator)
):
    check_rate_limit(request, "create")
    validate_content_size(payload.content)

    record = await allocator.create_text(repo, payload.content)
    logger.info(f"Created text {record.id}")

    return TextCreated(id=record.id, share_link=build_share_link(request, record.id))


@router.get("/text/{text_id}", response_model=Text)
async def read_text(
        text_id: str,
        request: Request,
        repo: TextRepository = Depends(get_text_repository)
):
    check_rate_limit(request, "read")
    return await repo.get(text_id)


@router.get("/text/{text_id}/raw")
async def read_text_raw(
        text_id: str,
        request: Request,
        repo: TextRepository = Depends(get_text_repository)
):
    """
    Return the text body as text/plain.
    Supports conditional requests through ETag / If-None-Match.
    """
    check_rate_limit(request, "read")
    record = await repo.get(text_id)

    etag = generate_etag(record.content)
    if check_if_none_match(request, etag):
        return Response(status_code=status.HTTP_304_NOT_MODIFIED)

    plain_response = PlainTextResponse(
        content=record.content,
        headers={
            "ETag": f'"{etag}"',
            # texts change and expire, so never cache for long
            "Cache-Control": "no-cache",
        }
    )
    add_security_headers(plain_response)
    return plain_response


@router.put("/text/{text_id}", response_model=Text)
async def update_text(
        text_id: str,
        payload: TextUpdate,
        request: Request,
        repo: TextRepository = Depends(get_text_repository)
):
    check_rate_limit(request, "write")
    validate_content_size(payload.content)
    return await repo.update(text_id, payload.content, password=payload.password)


@router.delete("/text/{text_id}", response_model=Message)
async def delete_text(
        text_id: str,
        request: Request,
        password: Optional[str] = Header(None, alias="X-Text-Password"),
        repo: TextRepository = Depends(get_text_repository)
):
    """Delete a text. Locked texts need their password in ``X-Text-Password``."""
    check_rate_limit(request, "write")
    await repo.delete(text_id, password=password)
    logger.info(f"Deleted text {text_id}")
    return Message(message="Text deleted successfully")


@router.get("/download/{text_id}")
async def download_text(
        text_id: str,
        request: Request,
        repo: TextRepository = Depends(get_text_repository)
):
    """Return the text as ``text-<id>.txt`` inside a zip archive."""
    check_rate_limit(request, "read")
    record = await repo.get(text_id)

    file_name = f"text-{text_id}.txt"
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9) as archive:
        archive.writestr(file_name, record.content)

    return Response(
        content=buffer.getvalue(),
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="text-{text_id}.zip"'},
    )


@router.post("/lock/{text_id}", response_model=Message)
async def lock_text(
        text_id: str,
        payload: TextLock,
        request: Request,
        repo: TextRepository = Depends(get_text_repository)
):
    check_rate_limit(request, "write")
    await repo.lock(text_id, payload.password)
    logger.info(f"Locked text {text_id}")
    return Message(message="Text locked successfully")
