from __future__ import annotations

from filefield_sources.models.entities import Actor, ManagedFile
from filefield_sources.models.enums import FileStatus

BYPASS_FILE_ACCESS = "bypass file access"
DOWNLOAD_PRIVATE_FILES = "download private files"
ACCESS_FILE_BROWSER = "access file browser"


class AccessPolicy:
    def can_download(self, actor: Actor, file: ManagedFile) -> bool:
        if BYPASS_FILE_ACCESS in actor.permissions:
            return True
        if actor.id and file.owner_id == actor.id:
            return True
        if file.status != FileStatus.permanent:
            return False
        if file.scheme == "private":
            return actor.has_permission(DOWNLOAD_PRIVATE_FILES)
        return True

    def can_browse(self, actor: Actor) -> bool:
        return actor.has_permission(ACCESS_FILE_BROWSER)
