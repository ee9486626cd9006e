import logging
from pathlib import Path
from typing import Optional, Dict, Any, Tuple
from sqlalchemy.orm import Session
from app.core.config import settings
from app.core.errors import NotFoundError
from app.models.file import File
from app.storage.local_storage import storage

logger = logging.getLogger(__name__)

FILE_NOT_FOUND_MESSAGE = "File not found"


class FileService:
    """Metadata rows for uploaded files plus the bytes they point to"""

    @staticmethod
    def upload(
        db: Session,
        user_id: str,
        file_name: str,
        mime_type: str,
        extension: str,
        file_size: int,
        file_path: str,
    ) -> File:
        db_file = File(
            user_id=user_id,
            file_name=file_name,
            mime_type=mime_type,
            extension=extension,
            file_size=file_size,
            file_path=str(file_path),
        )
        db.add(db_file)
        db.commit()
        db.refresh(db_file)
        return db_file

    @staticmethod
    def list(db: Session, page_size: Optional[int] = None, page: Optional[int] = None) -> Dict[str, Any]:
        """One page of files, newest first, with the total count"""
        limit = page_size or settings.DEFAULT_PAGE_SIZE
        current_page = page or settings.DEFAULT_PAGE
        offset = (current_page - 1) * limit

        query = db.query(File)
        count = query.count()
        rows = query.order_by(File.created_at.desc()).offset(offset).limit(limit).all()
        return {"count": count, "rows": rows}

    @staticmethod
    def get_by_id(db: Session, file_id: str) -> File:
        db_file = db.query(File).filter(File.id == file_id).first()
        if not db_file:
            raise NotFoundError(FILE_NOT_FOUND_MESSAGE)
        return db_file

    @staticmethod
    def delete(db: Session, file_id: str) -> None:
        """Remove the stored bytes and the record"""
        db_file = FileService.get_by_id(db, file_id)
        storage.delete_file(db_file.file_path)
        db.delete(db_file)
        db.commit()

    @staticmethod
    def download(db: Session, file_id: str) -> Tuple[File, Path]:
        """Resolve a file's record and the on-disk path of its bytes"""
        db_file = FileService.get_by_id(db, file_id)
        path = Path(db_file.file_path).resolve()
        if not path.exists():
            raise NotFoundError("File not found on disk")
        return db_file, path

    @staticmethod
    def update(
        db: Session,
        file_id: str,
        file_name: str,
        mime_type: str,
        extension: str,
        file_size: int,
        file_path: str,
    ) -> File:
        """Point a record at new bytes and drop the bytes it replaced"""
        db_file = FileService.get_by_id(db, file_id)
        old_path = db_file.file_path

        db_file.file_name = file_name
        db_file.mime_type = mime_type
        db_file.extension = extension
        db_file.file_size = file_size
        db_file.file_path = str(file_path)
        db.commit()
        db.refresh(db_file)

        if old_path != db_file.file_path:
            storage.delete_file(old_path)
        return db_file


file_service = FileService()
