"""
Archive Models
"""

from pydantic import BaseModel, Field
from pathlib import Path
from typing import List, Optional


class ArchiveResult(BaseModel):
    """Outcome of one thread archive run."""

    success: bool = Field(..., description="Directory and transcript were written")
    root_id: str
    path: Optional[Path] = Field(None, description="Archive folder")
    message_count: int = 0
    downloaded_files: List[str] = Field(
        default_factory=list, description="Attachments saved under files/"
    )
    failed_files: List[str] = Field(
        default_factory=list, description="Attachments that could not be downloaded"
    )
    error: Optional[str] = None
