"""Imports API routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from app.dependencies import DbSession
from app.imports.exceptions import (
    ActiveSessionExistsError,
    CommitInProgressError,
    ConflictUnresolvedError,
    FatalParseError,
    ImportSessionError,
    InvalidResolutionError,
    InvalidTransitionError,
    NoActiveSessionError,
    UploadTooLargeError,
)
from app.imports.schemas import (
    ImportCancelResponse,
    ImportCommitRequest,
    ImportCommitResponse,
    ImportPreviewResponse,
    ImportStatusResponse,
    ImportUploadRequest,
)
from app.imports.service import ImportService, session_to_response

router = APIRouter()


def get_import_service(db: DbSession) -> ImportService:
    """Get import service dependency."""
    return ImportService(db)


ImportServiceDep = Annotated[ImportService, Depends(get_import_service)]


def _to_http_error(error: ImportSessionError) -> HTTPException:
    """Translate an import workflow error into an HTTP error."""
    if isinstance(error, FatalParseError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": str(error),
                "session_id": error.session_id,
                "errors": [e.model_dump() for e in error.errors],
            },
        )
    if isinstance(error, UploadTooLargeError):
        return HTTPException(
            status_code=413,
            detail=str(error),
        )
    if isinstance(error, ActiveSessionExistsError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": str(error), "session_id": error.session_id},
        )
    if isinstance(error, ConflictUnresolvedError):
        return HTTPException(
            status_code=422,
            detail={"message": str(error), "domains": error.domains},
        )
    if isinstance(error, InvalidResolutionError):
        return HTTPException(
            status_code=422,
            detail={"message": str(error), "domains": [error.domain]},
        )
    if isinstance(error, NoActiveSessionError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    if isinstance(error, (CommitInProgressError, InvalidTransitionError)):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(error))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))


def _upload(service: ImportService, content: str | bytes, filename: str | None):
    try:
        session = service.upload(content, filename=filename)
    except ImportSessionError as e:
        raise _to_http_error(e) from e
    return service.build_preview(session)


@router.post(
    "/upload",
    response_model=ImportPreviewResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_caddyfile(data: ImportUploadRequest, service: ImportServiceDep):
    """Upload Caddyfile text and open an import session for review.

    Returns the preview payload of the new session.
    """
    return _upload(service, data.content, data.filename)


@router.post(
    "/upload-file",
    response_model=ImportPreviewResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_caddyfile_file(
    service: ImportServiceDep,
    file: UploadFile = File(...),
):
    """Upload a Caddyfile as a multipart file."""
    # Read one byte past the limit so oversized files are detected without
    # buffering them completely
    content = await file.read(service.settings.import_max_bytes + 1)
    return _upload(service, content, file.filename)


@router.get("/status", response_model=ImportStatusResponse)
async def get_import_status(service: ImportServiceDep):
    """Report whether an import session is waiting for review."""
    return service.status()


@router.get("/preview", response_model=ImportPreviewResponse)
async def get_import_preview(service: ImportServiceDep):
    """Get candidates, conflicts and parse errors of the session under review."""
    return service.preview()


@router.post("/commit", response_model=ImportCommitResponse)
async def commit_import(data: ImportCommitRequest, service: ImportServiceDep):
    """Commit the session under review with the given conflict resolutions."""
    try:
        session, result = service.commit(data.resolutions, session_id=data.session_id)
    except ImportSessionError as e:
        raise _to_http_error(e) from e

    return ImportCommitResponse(session=session_to_response(session), result=result)


@router.api_route("/cancel", methods=["POST", "DELETE"], response_model=ImportCancelResponse)
async def cancel_import(service: ImportServiceDep):
    """Cancel the pending or reviewing session, if there is one."""
    try:
        session = service.cancel()
    except ImportSessionError as e:
        raise _to_http_error(e) from e

    if session is None:
        return ImportCancelResponse(cancelled=False)
    return ImportCancelResponse(cancelled=True, session=session_to_response(session))
