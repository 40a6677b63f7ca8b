from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from filefield_sources.models.enums import FileStatus


class ManagedFile(BaseModel):
    id: int | None = None
    uri: str
    filename: str
    filesize: int = 0
    mime_type: str = "application/octet-stream"
    status: FileStatus = FileStatus.temporary
    owner_id: int = 0
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    usage: list[str] = Field(default_factory=list)

    @property
    def scheme(self) -> str:
        return self.uri.split("://", 1)[0] if "://" in self.uri else ""


class Actor(BaseModel):
    id: int = 0
    permissions: set[str] = Field(default_factory=set)

    def has_permission(self, permission: str) -> bool:
        return permission in self.permissions or "bypass file access" in self.permissions
