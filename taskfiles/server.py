"""
Web server for taskfiles.

Serves attached host directories by virtual path:

- GET /files/browse.json   - directory listing
- GET /files/read.json     - bounded (pager) read of a file
- GET /files/download.json - whole-file download
- GET /files/debug.json    - the virtual name -> real path table

All handlers run on the server's event loop, which is what serializes
access to the attachment registry.
"""

import json
import logging
import re
from typing import Any, Dict, Mapping, Optional

from fastapi import APIRouter, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse, Response
from pydantic import BaseModel

from .config import TaskFilesConfig
from .errors import ClientInputError, FilesError
from .files import Files

logger = logging.getLogger(__name__)


# Pydantic models for API
class FileInfo(BaseModel):
    name: str
    path: str
    is_directory: bool
    size: int
    mode: str
    nlink: int
    uid: int
    gid: int
    mtime: float


class ReadResponse(BaseModel):
    offset: int
    data: str
    length: int


# Global files instance
_files: Optional[Files] = None


def get_files() -> Files:
    """Get the current files instance."""
    if _files is None:
        raise HTTPException(status_code=500, detail="Files service not initialized")
    return _files


def set_files(files: Files):
    """Set the files instance directly (for testing)."""
    global _files
    _files = files


def init_files(config: TaskFilesConfig, extra_attachments: Optional[Mapping[str, str]] = None) -> Files:
    """Create the files service and attach everything configured.

    Attachments that fail are logged and skipped.
    """
    files = Files(max_pages=config.read.max_pages)

    attachments = dict(config.attachments)
    attachments.update(extra_attachments or {})

    for name, host_path in attachments.items():
        try:
            attachment = files.attach(host_path, name)
        except (FilesError, ValueError) as e:
            logger.warning(f"Skipping attachment '{name}': {e}")
            continue
        logger.info(f"Attached '{attachment.real_path}' as '{attachment.name}'")

    set_files(files)
    return files


def create_app(config: TaskFilesConfig, extra_attachments: Optional[Mapping[str, str]] = None) -> FastAPI:
    """Create FastAPI application with initialized attachments."""
    init_files(config, extra_attachments)
    return app


JSONP_CALLBACK = re.compile(r"[A-Za-z_$][A-Za-z0-9_.$]*")
INTEGER = re.compile(r"-?[0-9]+")


def json_response(content: Any, jsonp: Optional[str] = None) -> Response:
    """JSON body, or a JSONP callback invocation when ``jsonp`` is given."""
    if jsonp:
        if not JSONP_CALLBACK.fullmatch(jsonp):
            raise http_error(ClientInputError(f"Invalid jsonp callback name: '{jsonp}'"))
        body = f"{jsonp}({json.dumps(content)});"
        return Response(content=body, media_type="text/javascript")
    return JSONResponse(content=content)


def parse_int(name: str, value: Optional[str]) -> Optional[int]:
    """Parse an optional non-negative integer query parameter.

    Only plain ASCII digits are accepted; no whitespace or underscores.
    """
    if value is None:
        return None
    if not INTEGER.fullmatch(value):
        raise ClientInputError(f"Failed to parse {name}: '{value}' is not an integer")
    number = int(value)
    if number < 0:
        raise ClientInputError(f"Failed to parse {name}: must not be negative")
    return number


def http_error(error: FilesError) -> HTTPException:
    """Translate a service error into an HTTP error."""
    return HTTPException(status_code=error.status_code, detail=error.message)


router = APIRouter(prefix="/files", tags=["files"])


@router.get("/browse.json")
async def browse(
    path: Optional[str] = Query(None, description="Virtual directory path"),
    jsonp: Optional[str] = Query(None, description="JSONP callback name"),
):
    """List a directory, sorted by path."""
    files = get_files()
    try:
        entries = files.browse(path or "")
    except FilesError as e:
        raise http_error(e)

    listing = [FileInfo(**entry.to_dict()).model_dump() for entry in entries]
    return json_response(listing, jsonp)


@router.get("/read.json")
async def read(
    path: Optional[str] = Query(None, description="Virtual file path"),
    offset: Optional[str] = Query(None, description="Byte offset; omit for end of file"),
    length: Optional[str] = Query(None, description="Bytes wanted; capped per request"),
    jsonp: Optional[str] = Query(None, description="JSONP callback name"),
):
    """Read a bounded range of a file."""
    files = get_files()
    try:
        if not path:
            raise ClientInputError("Expecting 'path=value' in query")
        start = parse_int("offset", offset)
        count = parse_int("length", length)
        result = await files.read(path, start, count)
    except FilesError as e:
        raise http_error(e)

    return json_response(ReadResponse(**result.to_dict()).model_dump(), jsonp)


@router.get("/download.json")
async def download(path: Optional[str] = Query(None, description="Virtual file path")):
    """Stream a whole file as an attachment."""
    files = get_files()
    try:
        target = files.download(path or "")
    except FilesError as e:
        raise http_error(e)

    logger.debug(f"Download: {path} -> {target.path} ({target.content_type})")

    return FileResponse(
        target.path,
        media_type=target.content_type,
        headers=target.headers,
    )


@router.get("/debug.json")
async def debug(jsonp: Optional[str] = Query(None, description="JSONP callback name")):
    """Return the virtual path mapping."""
    files = get_files()
    paths: Dict[str, str] = files.debug()
    return json_response(paths, jsonp)


# Create FastAPI app
app = FastAPI(
    title="taskfiles",
    description="Browse, tail and download attached task directories",
    version="0.1.0"
)

# Pagers are usually served from another origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)
