from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence

from filefield_sources.config.schema import ValidationRuleSet
from filefield_sources.core.resolver import ResolvedFile
from filefield_sources.models.errors import UploadValidationError
from filefield_sources.utils.images import image_dimensions, parse_dimensions
from filefield_sources.utils.sizes import format_size, size_message

logger = logging.getLogger("filefield_sources.validators")

CustomRule = Callable[[ResolvedFile, ValidationRuleSet], list[str]]


class UploadValidator:
    """Runs every configured rule and collects all violations.

    The size rule only applies to newly introduced bytes: files already held
    in managed storage keep whatever size they were accepted with.
    """

    def __init__(self, extra_rules: Sequence[CustomRule] = ()) -> None:
        self._extra_rules = list(extra_rules)

    def validate(self, candidate: ResolvedFile, rules: ValidationRuleSet) -> list[str]:
        errors: list[str] = []
        file = candidate.file
        if candidate.is_new and rules.max_filesize:
            if file.filesize > rules.max_filesize:
                errors.append(size_message(file.filesize, rules.max_filesize))
        errors.extend(_validate_name_length(file.filename, rules.max_filename_length))
        if rules.file_extensions:
            errors.extend(_validate_extensions(file.filename, rules.file_extensions))
        if rules.min_resolution or rules.max_resolution:
            errors.extend(_validate_resolution(candidate, rules))
        for rule in self._extra_rules:
            errors.extend(rule(candidate, rules))
        return errors

    def check(self, candidate: ResolvedFile, rules: ValidationRuleSet) -> None:
        errors = self.validate(candidate, rules)
        if errors:
            logger.debug("Validation of %s failed: %s", candidate.file.filename, errors)
            raise UploadValidationError(
                f"The specified file {candidate.file.filename} could not be used.", errors
            )


def _validate_name_length(filename: str, max_length: int) -> list[str]:
    if not filename:
        return ["The file's name is empty. Please give a name to the file."]
    if len(filename) > max_length:
        return [
            f"The file's name exceeds the {max_length} characters limit. "
            "Please rename the file and try again."
        ]
    return []


def _validate_extensions(filename: str, extensions: str) -> list[str]:
    allowed = extensions.split()
    pattern = r"\.(" + "|".join(re.escape(ext) for ext in allowed) + r")$"
    if re.search(pattern, filename, re.IGNORECASE):
        return []
    return [f"Only files with the following extensions are allowed: {' '.join(allowed)}."]


def _validate_resolution(candidate: ResolvedFile, rules: ValidationRuleSet) -> list[str]:
    dimensions = image_dimensions(candidate.path)
    if dimensions is None:
        return []
    width, height = dimensions
    errors: list[str] = []
    if rules.max_resolution:
        max_width, max_height = parse_dimensions(rules.max_resolution)
        if width > max_width or height > max_height:
            errors.append(
                f"The image exceeds the maximum allowed dimensions of {rules.max_resolution} pixels."
            )
    if rules.min_resolution:
        min_width, min_height = parse_dimensions(rules.min_resolution)
        if width < min_width or height < min_height:
            errors.append(
                f"The image is too small; the minimum dimensions are {rules.min_resolution} pixels "
                f"and the image size is {width}x{height} pixels."
            )
    return errors


def describe(rules: ValidationRuleSet) -> str:
    """Help text listing the limits a submitted file has to respect."""
    lines: list[str] = []
    if rules.max_filesize:
        lines.append(f"Files must be less than {format_size(rules.max_filesize)}.")
    if rules.file_extensions:
        lines.append(f"Allowed file types: {rules.file_extensions}.")
    if rules.min_resolution and rules.max_resolution:
        if rules.min_resolution == rules.max_resolution:
            lines.append(f"Images must be exactly {rules.max_resolution} pixels.")
        else:
            lines.append(
                f"Images must be between {rules.min_resolution} pixels and {rules.max_resolution} pixels."
            )
    elif rules.min_resolution:
        lines.append(f"Images must be larger than {rules.min_resolution} pixels.")
    elif rules.max_resolution:
        lines.append(f"Images must be smaller than {rules.max_resolution} pixels.")
    return " ".join(lines)
