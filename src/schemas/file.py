"""
File attachment schemas.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class FileRegister(BaseModel):
    """Metadata of a file the upload layer has already stored."""

    file_name: str = Field(..., min_length=1, max_length=255)
    file_path: str = Field(..., min_length=1, max_length=1024)
    file_size: int = Field(..., gt=0)
    mime_type: str = Field(..., min_length=1, max_length=255)


class FileResponse(BaseModel):
    id: uuid.UUID
    task_id: uuid.UUID
    uploaded_by: uuid.UUID
    file_name: str
    file_path: str
    file_size: int
    mime_type: str
    uploaded_at: datetime

    class Config:
        from_attributes = True
