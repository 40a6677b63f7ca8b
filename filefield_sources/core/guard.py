from __future__ import annotations

from filefield_sources.core.access import AccessPolicy
from filefield_sources.models.entities import Actor, ManagedFile
from filefield_sources.models.enums import Admission
from filefield_sources.models.errors import AccessDeniedError, CapacityExceededError

ACCESS_DENIED_MESSAGE = "You do not have permission to use the selected file."


def capacity_message(label: str, cardinality: int) -> str:
    return f"{label}: this field cannot hold more than {cardinality} values."


class AdmissionGuard:
    """Decides whether a resolved file may join the field's list."""

    def __init__(self, access: AccessPolicy) -> None:
        self._access = access

    def admit(
        self,
        file: ManagedFile,
        fids: list[int],
        actor: Actor,
        cardinality: int = 0,
        check_access: bool = True,
    ) -> Admission:
        if file.id in fids:
            return Admission.already_present
        if cardinality > 0 and len(fids) >= cardinality:
            return Admission.capacity_exceeded
        if check_access and not self._access.can_download(actor, file):
            return Admission.access_denied
        return Admission.admitted

    def enforce(
        self,
        file: ManagedFile,
        fids: list[int],
        actor: Actor,
        cardinality: int = 0,
        label: str = "",
        check_access: bool = True,
    ) -> bool:
        """Raise on rejection; False means the file is already attached."""
        admission = self.admit(file, fids, actor, cardinality, check_access)
        if admission == Admission.access_denied:
            raise AccessDeniedError(ACCESS_DENIED_MESSAGE)
        if admission == Admission.capacity_exceeded:
            raise CapacityExceededError(capacity_message(label, cardinality))
        return admission == Admission.admitted
