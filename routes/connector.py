"""
FileKeep Server - Connector Endpoint

This module exposes the file manager command engine over HTTP:
- GET|POST /connector with "cmd" selecting the command (default "open")
- Query string and form fields are merged into one parameter dict
- Uploaded files are handed to the engine as seekable streams
- Downloads are streamed from disk; everything else is flat JSON
"""

import logging
from typing import Dict, Any

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import FileResponse, JSONResponse
from starlette.datastructures import UploadFile

from auth import GetCurrentIdentity
from exceptions import FileTooLargeError
from file_manager import ExecuteCommand
from models.infrastructure import CommandResult, RequestContext, UploadedPart, UserIdentity


# Create logger
logger = logging.getLogger(__name__)

# Create router instance
router = APIRouter()

# Parameters that always arrive as lists ("targets[]=a&targets[]=b")
LIST_PARAMS = {"targets", "hashes", "upload"}

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0"
}


# ==================== Request Parsing ====================

def AddParam(params: Dict[str, Any], key: str, value) -> None:
    """Store one query/form item, collecting list parameters"""
    name = key[:-2] if key.endswith("[]") else key

    if isinstance(value, UploadFile):
        value = UploadedPart(filename=value.filename or "", stream=value.file)

    if name in LIST_PARAMS or key.endswith("[]"):
        params.setdefault(name, []).append(value)
    else:
        params[name] = value


def ExceedsPostLimit(request: Request) -> bool:
    content_length = request.headers.get("content-length")
    if not content_length or not content_length.isdigit():
        return False
    return int(content_length) > request.app.state.config.post_size_limit


def BuildResponse(result: CommandResult):
    """
    Turn a CommandResult into the HTTP response

    Args:
        result: Outcome of ExecuteCommand

    Returns:
        JSONResponse or FileResponse
    """
    if result.error is not None:
        return JSONResponse(result.error.ToPayload(), status_code=result.status_code)

    if result.download is not None:
        target = result.download
        return FileResponse(
            target.path,
            media_type="application/octet-stream",
            filename=target.filename,
            headers=NO_CACHE_HEADERS
        )

    return JSONResponse(result.payload, status_code=result.status_code)


# ==================== Connector Endpoint ====================

@router.api_route("/connector", methods=["GET", "POST"], tags=["Connector"])
async def connector(request: Request, identity: UserIdentity = Depends(GetCurrentIdentity)):
    """
    Run one file manager command

    Args:
        request: Incoming request (query string and optional form body)
        identity: Authenticated user (from JWT token)

    Returns:
        JSON payload, error payload {error, code}, or a file download
    """
    if ExceedsPostLimit(request):
        logger.warning(f"Request from user '{identity.username}' exceeds the post size limit")
        return BuildResponse(CommandResult.Failure(FileTooLargeError("Request body too large")))

    params: Dict[str, Any] = {}
    for key, value in request.query_params.multi_items():
        AddParam(params, key, value)

    form = None
    content_type = request.headers.get("content-type", "")
    if request.method == "POST" and (
        content_type.startswith("multipart/form-data")
        or content_type.startswith("application/x-www-form-urlencoded")
    ):
        form = await request.form()
        for key, value in form.multi_items():
            AddParam(params, key, value)

    try:
        command = params.pop("cmd", None)
        context = RequestContext(
            identity=identity,
            config=request.app.state.config,
            plugins=request.app.state.plugins,
            client_address=request.client.host if request.client else ""
        )

        result = await run_in_threadpool(ExecuteCommand, command, params, context)
        return BuildResponse(result)

    finally:
        if form is not None:
            await form.close()
