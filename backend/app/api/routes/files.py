from pathlib import Path
from fastapi import APIRouter, Depends, UploadFile, File as FastAPIFile, Query, Response, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_serializer
from datetime import datetime
from app.core.database import get_db
from app.core.errors import NotFoundError
from app.api.dependencies import get_current_user_id
from app.services.file_service import file_service
from app.storage.local_storage import storage

router = APIRouter(prefix="/file", tags=["files"])

DEFAULT_MIME_TYPE = "application/octet-stream"


class FileRecordResponse(BaseModel):
    id: str
    user_id: str = Field(serialization_alias="userId")
    file_name: str = Field(serialization_alias="fileName")
    mime_type: str = Field(serialization_alias="mimeType")
    extension: str
    file_size: int = Field(serialization_alias="fileSize")
    created_at: Optional[datetime] = Field(default=None, serialization_alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, serialization_alias="updatedAt")

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at", "updated_at")
    def serialize_timestamps(self, value: Optional[datetime], _info):
        return value.isoformat() if value else None


class FileListResponse(BaseModel):
    count: int
    rows: List[FileRecordResponse]


async def _store_upload(file: UploadFile) -> dict:
    """Write the upload to disk and describe it the way FileService expects"""
    file_path, file_size = await storage.save_file(file)
    file_name = file.filename or file_path.name
    return {
        "file_name": file_name,
        "mime_type": file.content_type or DEFAULT_MIME_TYPE,
        "extension": Path(file_name).suffix,
        "file_size": file_size,
        "file_path": str(file_path),
    }


@router.post("/upload", response_model=FileRecordResponse, status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: UploadFile = FastAPIFile(...),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Upload a file"""
    stored = await _store_upload(file)
    return await run_in_threadpool(file_service.upload, db, user_id=user_id, **stored)


# Routes that only touch the database are plain functions, so FastAPI runs them
# in its thread pool; the upload routes await the body and offload store calls
@router.get("/list", response_model=FileListResponse)
def list_files(
    list_size: Optional[int] = Query(None, ge=1, description="Page size"),
    page: Optional[int] = Query(None, ge=1, description="Page number, starting at 1"),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """List files page by page, newest first"""
    return file_service.list(db, page_size=list_size, page=page)


@router.get("/download/{file_id}")
def download_file(
    file_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Download a file"""
    db_file, file_path = file_service.download(db, file_id)
    return FileResponse(
        path=file_path,
        media_type=db_file.mime_type,
        filename=db_file.file_name,
    )


@router.delete("/delete/{file_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_file(
    file_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Delete a file from disk and database"""
    file_service.delete(db, file_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/update/{file_id}", response_model=FileRecordResponse)
async def update_file(
    file_id: str,
    file: UploadFile = FastAPIFile(...),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Replace a file's bytes and metadata"""
    # Check first so a missing record doesn't leave the new upload orphaned on disk
    await run_in_threadpool(file_service.get_by_id, db, file_id)
    stored = await _store_upload(file)
    try:
        return await run_in_threadpool(file_service.update, db, file_id, **stored)
    except NotFoundError:
        storage.delete_file(stored["file_path"])
        raise


@router.get("/{file_id}", response_model=FileRecordResponse)
def get_file(
    file_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Get a single file by ID"""
    return file_service.get_by_id(db, file_id)
