from typing import Any, Dict, List, Optional


class ImportPipelineError(Exception):
    """Base class for failures raised while importing a student spreadsheet."""


class ParseError(ImportPipelineError):
    """The workbook could not be opened, read, or has no sheets."""


class ValidationError(ImportPipelineError):
    """
    A row of the batch is missing one or more required fields.

    Attributes:
        row_number: 1-based position of the first failing data row
        row: The row mapping as parsed from the sheet
        missing_fields: Column names with no usable value
    """

    def __init__(
        self,
        message: str,
        row_number: Optional[int] = None,
        row: Optional[Dict[str, Any]] = None,
        missing_fields: Optional[List[str]] = None
    ):
        super().__init__(message)
        self.row_number = row_number
        self.row = row or {}
        self.missing_fields = missing_fields or []


class DatabaseError(ImportPipelineError):
    """A query or statement against the student store failed."""


class FileSystemError(ImportPipelineError):
    """Saving or removing a temporary upload failed."""
