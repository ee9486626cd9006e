import logging
import time
import uuid
from pathlib import Path
from fastapi import UploadFile
from app.core.config import Settings, settings
from app.core.errors import VerificationError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


class LocalStorage:
    def __init__(self, config: Settings):
        self.upload_dir = Path(config.UPLOAD_DIR)
        self.max_file_size = config.MAX_FILE_SIZE

    def build_path(self, original_filename: str) -> Path:
        """Unique on-disk path that keeps the original name readable"""
        original = Path(original_filename or "upload")
        unique_suffix = f"{uuid.uuid4()}-{int(time.time() * 1000)}"
        return self.upload_dir / f"{original.stem}-{unique_suffix}{original.suffix}"

    async def save_file(self, file: UploadFile) -> tuple[Path, int]:
        """Save uploaded file and return (file_path, size in bytes)"""
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        file_path = self.build_path(file.filename)

        size = 0
        with open(file_path, "wb") as f:
            while True:
                chunk = await file.read(CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > self.max_file_size:
                    break
                f.write(chunk)

        if size > self.max_file_size:
            file_path.unlink(missing_ok=True)
            raise VerificationError(
                f"File exceeds maximum size of {self.max_file_size} bytes"
            )

        return file_path, size

    def delete_file(self, file_path: str | Path) -> bool:
        """Delete a stored file; returns False when it was already gone"""
        path = Path(file_path)
        if path.exists():
            path.unlink()
            return True
        logger.warning("Stored file %s was already missing", path)
        return False


storage = LocalStorage(settings)
