from __future__ import annotations

from enum import StrEnum


class FileStatus(StrEnum):
    temporary = "temporary"
    permanent = "permanent"


class BrowseMode(StrEnum):
    restricted = "restricted"
    full = "full"


class MatchMode(StrEnum):
    starts_with = "starts_with"
    contains = "contains"


class AttachMode(StrEnum):
    move = "move"
    copy = "copy"


class ErrorKind(StrEnum):
    not_found = "not_found"
    io_failure = "io_failure"
    invalid_input = "invalid_input"
    validation = "validation"
    access_denied = "access_denied"
    capacity_exceeded = "capacity_exceeded"


class Admission(StrEnum):
    admitted = "admitted"
    already_present = "already_present"
    access_denied = "access_denied"
    capacity_exceeded = "capacity_exceeded"
