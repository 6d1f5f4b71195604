# SPDX-License-Identifier: MIT
"""Manifest validation for WAPM packages.

Every check runs on every call and findings accumulate, so a single pass
reports everything that needs fixing before the manifest can be written.
"""

from __future__ import annotations

import logging
import re
from pathlib import PurePosixPath, PureWindowsPath
from typing import Any

from jsonschema import Draft202012Validator, ValidationError

from .models import TargetManifest, ValidationDiagnostic
from .schema import FIELD_ORDER, MANIFEST_SCHEMA, MIN_DESCRIPTION_LENGTH, REQUIRED_FIELDS

logger = logging.getLogger(__name__)

_FIELD_NAME = re.compile(r"^[A-Za-z_]+")


class ManifestError(Exception):
    """Base exception for manifest-related errors."""

    pass


class ManifestValidationError(ManifestError):
    """Raised when a manifest has error-severity diagnostics.

    Attributes:
        diagnostics: All diagnostics produced, warnings included
    """

    def __init__(self, diagnostics: list[ValidationDiagnostic]):
        self.diagnostics = diagnostics
        errors = self.errors
        message = f"Manifest validation failed with {len(errors)} error(s)"
        if errors:
            message += f": [{errors[0].field}] {errors[0].message}"
        super().__init__(message)

    @property
    def errors(self) -> list[ValidationDiagnostic]:
        return [d for d in self.diagnostics if d.is_error]

    @property
    def warnings(self) -> list[ValidationDiagnostic]:
        return [d for d in self.diagnostics if not d.is_error]


def _json_path_from_error(error: ValidationError) -> str:
    """Convert a jsonschema error path to a readable field path."""
    if not error.absolute_path:
        return "<root>"
    parts = []
    for part in error.absolute_path:
        if isinstance(part, int):
            parts.append(f"[{part}]")
        else:
            if parts:
                parts.append(f".{part}")
            else:
                parts.append(str(part))
    return "".join(parts)


def _format_error_message(error: ValidationError) -> str:
    """Format a jsonschema error into a human-readable message."""
    if error.validator == "required":
        return error.message

    if error.validator == "type":
        expected = error.validator_value
        actual = type(error.instance).__name__
        return f"Expected {expected}, got {actual}"

    if error.validator == "pattern":
        if error.absolute_path and error.absolute_path[-1] == "version":
            return f"Version '{error.instance}' is not a valid semantic version (MAJOR.MINOR.PATCH)"
        return "Value does not match required pattern"

    if error.validator == "enum":
        allowed = ", ".join(repr(v) for v in error.validator_value)
        return f"Value must be one of: {allowed}"

    if error.validator == "minLength":
        return "Value must not be empty"

    if error.validator == "minItems":
        return "The package must contain at least one module"

    return error.message


def _check_required(data: dict[str, Any]) -> list[ValidationDiagnostic]:
    return [
        ValidationDiagnostic("error", name, f"Missing required field: {name}")
        for name in REQUIRED_FIELDS
        if name not in data
    ]


def _check_schema(data: dict[str, Any]) -> list[ValidationDiagnostic]:
    validator = Draft202012Validator(MANIFEST_SCHEMA)
    return [
        ValidationDiagnostic("error", _json_path_from_error(error), _format_error_message(error))
        for error in validator.iter_errors(data)
    ]


def _check_description(data: dict[str, Any]) -> list[ValidationDiagnostic]:
    description = data.get("description")
    if not isinstance(description, str):
        return []
    if len(description.strip()) < MIN_DESCRIPTION_LENGTH:
        return [
            ValidationDiagnostic(
                "warning",
                "description",
                f"Description is shorter than {MIN_DESCRIPTION_LENGTH} characters",
            )
        ]
    return []


def _is_absolute(path: str) -> bool:
    return PurePosixPath(path).is_absolute() or PureWindowsPath(path).is_absolute()


def _check_module_paths(data: dict[str, Any]) -> list[ValidationDiagnostic]:
    diagnostics = []
    for index, module in enumerate(data.get("modules", [])):
        source = module.get("source") if isinstance(module, dict) else None
        if not isinstance(source, str):
            continue
        field = f"modules[{index}].source"
        if not source.strip():
            diagnostics.append(ValidationDiagnostic("error", field, "Module path is empty"))
        elif _is_absolute(source):
            diagnostics.append(
                ValidationDiagnostic("error", field, f"Module path '{source}' must be relative")
            )
    return diagnostics


def _check_command_modules(data: dict[str, Any]) -> list[ValidationDiagnostic]:
    declared = {m.get("name") for m in data.get("modules", []) if isinstance(m, dict)}
    diagnostics = []
    for index, command in enumerate(data.get("commands", [])):
        module = command.get("module") if isinstance(command, dict) else None
        if module and module not in declared:
            diagnostics.append(
                ValidationDiagnostic(
                    "error",
                    f"commands[{index}].module",
                    f"Command refers to unknown module '{module}'",
                )
            )
    return diagnostics


def _field_rank(diagnostic: ValidationDiagnostic) -> int:
    match = _FIELD_NAME.match(diagnostic.field)
    name = match.group(0) if match else ""
    try:
        return FIELD_ORDER.index(name)
    except ValueError:
        return len(FIELD_ORDER)


def validate_manifest(manifest: TargetManifest) -> list[ValidationDiagnostic]:
    """Validate a target manifest against the registry's constraints.

    Args:
        manifest: The manifest produced by the mapper

    Returns:
        Diagnostics sorted by field declaration order. An empty list means
        the manifest can be written.

    Example:
        >>> manifest = TargetManifest(name="demo", version="0.1")
        >>> [d.field for d in validate_manifest(manifest)]
        ['version', 'description', 'license', 'modules']
    """
    data = manifest.as_dict()

    diagnostics: list[ValidationDiagnostic] = []
    diagnostics.extend(_check_required(data))
    diagnostics.extend(_check_schema(data))
    diagnostics.extend(_check_description(data))
    diagnostics.extend(_check_module_paths(data))
    diagnostics.extend(_check_command_modules(data))

    # sorted() is stable, so checks keep their relative order within a field
    diagnostics = sorted(diagnostics, key=_field_rank)

    logger.debug(
        "Validated %s: %d error(s), %d warning(s)",
        manifest.package_name,
        sum(1 for d in diagnostics if d.is_error),
        sum(1 for d in diagnostics if not d.is_error),
    )
    return diagnostics


def has_errors(diagnostics: list[ValidationDiagnostic]) -> bool:
    """Return True if any diagnostic blocks writing the manifest."""
    return any(d.is_error for d in diagnostics)


def validate_manifest_strict(manifest: TargetManifest) -> list[ValidationDiagnostic]:
    """Validate a manifest and raise if any error-severity diagnostic is found.

    Returns:
        The warnings produced, which never block publishing

    Raises:
        ManifestValidationError: If the manifest has errors
    """
    diagnostics = validate_manifest(manifest)
    if has_errors(diagnostics):
        raise ManifestValidationError(diagnostics)
    return diagnostics
