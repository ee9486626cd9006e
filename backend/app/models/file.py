from sqlalchemy import Column, String, DateTime, ForeignKey, BigInteger
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.models.user import _uuid_str


class File(Base):
    """
    File model representing an uploaded file.

    Stores metadata about the file and links it to the user who uploaded it.
    Actual file content is stored on disk, not in database.
    """
    __tablename__ = "files"

    id = Column(String(36), primary_key=True, default=_uuid_str)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    # file_name is what the user uploaded (for display and download)
    file_name = Column(String, nullable=False)
    mime_type = Column(String, nullable=False)
    extension = Column(String, nullable=False)
    # File size in bytes - BigInteger handles large files (>2GB)
    file_size = Column(BigInteger, nullable=False)
    # Full path to file on disk - used to read file content
    file_path = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", backref="files")
