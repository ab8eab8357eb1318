# SPDX-License-Identifier: MIT
"""casfs HTTP file server.

Thin FastAPI controller over the storage backend:

- ``GET    /v1/fileserver/{key}`` streams the stored bytes back, typed by sniffing them
- ``POST   /v1/fileserver/{key}`` stores the multipart ``file`` field
- ``DELETE /v1/fileserver/{key}`` removes the file and prunes empty directories
"""

from __future__ import annotations

import mimetypes
from collections.abc import AsyncIterator

import filetype
import uvicorn
from dotenv import load_dotenv
from fastapi import APIRouter, Depends, FastAPI, File, Request, UploadFile, status
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel

from .config import get_bind_address, get_chunk_size, logger
from .exceptions import KeyNotFoundError, MalformedKeyError, StorageError, StorageIOError
from .storage import StorageBackend, get_storage


class MessageResponse(BaseModel):
    """Body returned by successful write and delete calls."""

    message: str


router = APIRouter(prefix="/fileserver", tags=["fileserver"])


def get_backend(request: Request) -> StorageBackend:
    return request.app.state.storage


def _detect_media_type(head: bytes, stored_name: str) -> str:
    """Sniff the MIME type from the leading bytes of a stored file.

    Falls back to the extension kept on the stored file name, then to
    ``application/octet-stream``.
    """
    mime = filetype.guess_mime(head) if head else None
    if mime is None:
        mime, _ = mimetypes.guess_type(stored_name)
    return mime or "application/octet-stream"


@router.get("/{key}")
async def read_file(key: str, backend: StorageBackend = Depends(get_backend)) -> StreamingResponse:
    handle = await backend.read_stream(key)
    chunk_size = get_chunk_size()
    try:
        head = await handle.read(chunk_size)
    except Exception:
        await handle.close()
        raise

    async def body() -> AsyncIterator[bytes]:
        # The handle was handed over by read_stream; release it once streamed
        try:
            chunk = head
            while chunk:
                yield chunk
                chunk = await handle.read(chunk_size)
        finally:
            await handle.close()

    media_type = _detect_media_type(head, backend.path_key(key).file_name)
    return StreamingResponse(body(), media_type=media_type)



@router.post("/{key}", response_model=MessageResponse)
async def write_file(
    key: str,
    file: UploadFile = File(...),
    backend: StorageBackend = Depends(get_backend),
) -> MessageResponse:
    try:
        await backend.write_stream(key, file)
    finally:
        await file.close()
    return MessageResponse(message=f"File {key} uploaded successfully")


@router.delete("/{key}", response_model=MessageResponse)
async def delete_file(key: str, backend: StorageBackend = Depends(get_backend)) -> MessageResponse:
    await backend.delete(key)
    return MessageResponse(message=f"File {key} deleted successfully")


async def storage_exception_handler(request: Request, exc: StorageError) -> JSONResponse:
    """Map storage errors to HTTP status codes."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    if isinstance(exc, MalformedKeyError):
        status_code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, KeyNotFoundError):
        status_code = status.HTTP_404_NOT_FOUND

    if isinstance(exc, StorageIOError):
        logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
    else:
        logger.info("Rejected %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


def create_app(storage: StorageBackend | None = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        storage: Backend to serve.  Defaults to ``get_storage()``.
    """
    app = FastAPI(
        title="casfs",
        version="0.1.0",
        description="Content-addressable file upload and download",
    )
    app.state.storage = storage or get_storage()
    app.include_router(router, prefix="/v1")
    app.add_exception_handler(StorageError, storage_exception_handler)  # type: ignore[arg-type]
    return app


def main() -> None:
    """Run the file server with uvicorn."""
    load_dotenv()
    host, port = get_bind_address()
    logger.info("Starting casfs file server on %s:%d", host, port)
    uvicorn.run(create_app(), host=host, port=port)


if __name__ == "__main__":
    main()
