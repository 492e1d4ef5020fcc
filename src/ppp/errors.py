"""Typed error hierarchy.

Every error carries a stable ``code`` so the CLI can report failures
as machine-readable JSON without string matching.
"""

from __future__ import annotations


class PppError(Exception):
    """Base class for all ppp failures."""

    code = "ppp_error"


class ConfigError(PppError):
    code = "config_error"


class InvalidIdFormat(PppError):
    code = "invalid_id_format"


class ValidationError(PppError):
    """A field value outside its vocabulary, or a required field left empty."""

    code = "validation_error"


class ParentNotFound(PppError):
    code = "parent_not_found"


class HierarchyViolation(PppError):
    code = "hierarchy_violation"


class IssueNotFound(PppError):
    code = "issue_not_found"


class SprintNotFound(PppError):
    code = "sprint_not_found"


class IssueHasChildren(PppError):
    code = "issue_has_children"


class DatabaseNotFound(PppError):
    code = "database_not_found"


class DatabaseCorrupt(PppError):
    code = "database_corrupt"


class ParentFolderMissing(PppError):
    code = "parent_folder_missing"


class FilesystemOperationFailed(PppError):
    code = "filesystem_operation_failed"


class InvalidSprintTransition(PppError):
    code = "invalid_sprint_transition"
