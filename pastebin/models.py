"""
Pydantic models shared by the storage layer and the routes.
"""
from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, Field


class PasteEntry(BaseModel):
    """A stored paste."""
    data: bytes = Field(..., description="Raw paste content")
    file_name: Optional[str] = Field(None, description="File name given by the uploader")
    mime_type: str = Field(..., description="Guessed MIME type of the content")
    best_before: Optional[datetime] = Field(None, description="Expiry time (UTC), null if never expires")

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Check whether the paste is past its expiry time."""
        if self.best_before is None:
            return False
        now = now or datetime.now(timezone.utc)
        return now >= self.best_before


class HealthCheck(BaseModel):
    """Schema for health check response."""
    ok: bool = Field(..., description="Is the application healthy?")
    backend: str = Field(..., description="Name of the active storage backend")
