import math
import numbers
import time
import uuid
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, BinaryIO, Dict, List, Union

import pandas as pd
from pydantic import ValidationError as PydanticValidationError

from models import ImportSummary, StudentRecord
from reconciliation import ReconciliationEngine
from utils.exceptions import DatabaseError, ParseError, ValidationError
from utils.result import Result

# Configure logger with more structured format
logger = logging.getLogger(__name__)

# Day 25569 of the spreadsheet date system is 1970-01-01
EXCEL_EPOCH_OFFSET_DAYS = 25569
SECONDS_PER_DAY = 86400
UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

DATE_FIELD = "dob"
REQUIRED_COLUMNS = ["rollno", "name", "class", "branch", "gender", "dob", "prn"]

INVALID_DATA_MESSAGE = "Invalid data format in Excel file."
PROCESSING_ERROR_MESSAGE = "An error occurred while processing the file."
SUCCESS_MESSAGE = "Excel data inserted/updated successfully."

WorkbookSource = Union[str, BinaryIO]


class LogContext:
    """Context manager for tracking and logging operation metrics"""
    def __init__(self, operation_name: str, **kwargs):
        self.operation_name = operation_name
        self.start_time = None
        self.request_id = kwargs.get('request_id', str(uuid.uuid4())[:8])
        self.extra = {key: value for key, value in kwargs.items() if key != 'request_id'}

    def __enter__(self):
        self.start_time = time.time()
        logger.info(f"Starting {self.operation_name}", extra={"request_id": self.request_id, **self.extra})
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = time.time() - self.start_time
        if exc_type:
            logger.error(
                f"Failed {self.operation_name} in {duration:.2f}s: {str(exc_val)}",
                extra={"request_id": self.request_id, "duration": duration, **self.extra},
                exc_info=(exc_type, exc_val, exc_tb)
            )
        else:
            logger.info(
                f"Completed {self.operation_name} in {duration:.2f}s",
                extra={"request_id": self.request_id, "duration": duration, **self.extra}
            )


def _is_null(value: Any) -> bool:
    if value is None or value is pd.NaT:
        return True
    return isinstance(value, float) and math.isnan(value)


def _is_missing(value: Any) -> bool:
    return _is_null(value) or (isinstance(value, str) and not value.strip())


def normalize_excel_date(value: Any) -> Any:
    """
    Convert a spreadsheet date serial to an ISO ``YYYY-MM-DD`` string.

    Numbers are read as days counted by the spreadsheet date system
    (serial 25569 is 1970-01-01); any time-of-day fraction is dropped.
    Real date/datetime cells are formatted directly. Everything else,
    including unparseable values, is returned unchanged.

    Args:
        value: Raw cell value

    Returns:
        The ISO date string, or the original value
    """
    if isinstance(value, bool) or _is_null(value):
        return value

    if isinstance(value, numbers.Real):
        seconds = (float(value) - EXCEL_EPOCH_OFFSET_DAYS) * SECONDS_PER_DAY
        try:
            moment = UNIX_EPOCH + timedelta(seconds=seconds)
        except OverflowError:
            logger.warning(f"Date serial out of range, leaving as-is: {value}")
            return value
        return moment.date().isoformat()

    # pandas.Timestamp is a datetime subclass
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()

    return value


class SpreadsheetParser:
    """
    Reads the first sheet of a workbook into row mappings.

    Headers are stripped and lower-cased. Every row carries every header,
    with empty cells set to None, and the ``dob`` value normalized with
    :func:`normalize_excel_date`.
    """

    def parse(self, source: WorkbookSource) -> List[Dict[str, Any]]:
        """
        Parse a workbook from a file path or binary buffer.

        Args:
            source: Path to the workbook or a readable binary buffer

        Returns:
            Ordered list of row dictionaries

        Raises:
            ParseError: If the workbook cannot be opened or has no sheets
        """
        source_name = source if isinstance(source, str) else type(source).__name__
        logger.info(f"Parsing Excel file: {source_name}")

        try:
            start_time = time.time()
            with pd.ExcelFile(source) as workbook:
                if not workbook.sheet_names:
                    raise ParseError("Workbook contains no sheets")
                sheet_name = workbook.sheet_names[0]
                df = workbook.parse(sheet_name, dtype=object)
            read_time = time.time() - start_time
        except ParseError:
            logger.error("Workbook contains no sheets", extra={"source": source_name})
            raise
        except Exception as e:
            logger.error(
                f"Failed to read Excel file",
                extra={
                    "source": source_name,
                    "error": str(e),
                    "error_type": type(e).__name__
                }
            )
            raise ParseError(f"Failed to read Excel file: {str(e)}") from e

        df.columns = [str(col).strip().lower() for col in df.columns]
        rows = [self._clean_row(row) for row in df.to_dict(orient="records")]

        logger.info(
            f"Excel file parsed successfully",
            extra={
                "source": source_name,
                "sheet_name": sheet_name,
                "row_count": len(rows),
                "column_count": len(df.columns),
                "read_time_seconds": f"{read_time:.2f}"
            }
        )
        return rows

    @staticmethod
    def _clean_row(row: Dict[str, Any]) -> Dict[str, Any]:
        cleaned = {column: (None if _is_null(value) else value) for column, value in row.items()}
        if DATE_FIELD in cleaned:
            cleaned[DATE_FIELD] = normalize_excel_date(cleaned[DATE_FIELD])
        return cleaned


class RowValidator:
    """
    Checks a whole batch before anything is persisted.

    A single row with a missing required field rejects the batch.
    """

    def __init__(self, required_columns: List[str] = None):
        self.required_columns = required_columns or list(REQUIRED_COLUMNS)

    def validate(self, rows: List[Dict[str, Any]]) -> List[StudentRecord]:
        """
        Validate every row and convert the batch to StudentRecords.

        Args:
            rows: Parsed row mappings

        Returns:
            The records in sheet order

        Raises:
            ValidationError: For the first row with a missing or unusable field
        """
        logger.info("Validating Excel data")
        records = []
        for index, row in enumerate(rows, start=1):
            missing = [col for col in self.required_columns if _is_missing(row.get(col))]
            if missing:
                logger.error(
                    f"Invalid row {index}: missing {', '.join(missing)}",
                    extra={"row_number": index, "row": row, "missing_fields": missing}
                )
                raise ValidationError(
                    f"Row {index} is missing required fields: {', '.join(missing)}",
                    row_number=index,
                    row=row,
                    missing_fields=missing
                )

            try:
                records.append(StudentRecord.model_validate(row))
            except PydanticValidationError as e:
                fields = [".".join(str(part) for part in err["loc"]) for err in e.errors()]
                logger.error(
                    f"Invalid row {index}: unusable values in {', '.join(fields)}",
                    extra={"row_number": index, "row": row}
                )
                raise ValidationError(
                    f"Row {index} has invalid values: {', '.join(fields)}",
                    row_number=index,
                    row=row,
                    missing_fields=fields
                ) from e

        logger.info(f"Excel data validation successful", extra={"row_count": len(records)})
        return records


class StudentImportProcessor:
    """
    Runs one uploaded workbook through parsing, validation and reconciliation.

    Failures are turned into a Result with the HTTP status and a generic
    message; the details only go to the log.
    """

    def __init__(self, engine: ReconciliationEngine, parser: SpreadsheetParser = None,
                 validator: RowValidator = None):
        self.engine = engine
        self.parser = parser or SpreadsheetParser()
        self.validator = validator or RowValidator()

    def process_file(self, source: WorkbookSource) -> Result[ImportSummary]:
        """
        Import student records from a workbook.

        Args:
            source: Path to the uploaded workbook or a binary buffer

        Returns:
            Result[ImportSummary]: 200 with counts, 400 on invalid data, 500 on processing failure
        """
        request_id = str(uuid.uuid4())[:8]
        log_context = {
            "request_id": request_id,
            "source": source if isinstance(source, str) else type(source).__name__
        }

        logger.info(f"Processing student workbook", extra=log_context)

        try:
            with LogContext("workbook parsing", **log_context):
                rows = self.parser.parse(source)
            log_context["row_count"] = len(rows)

            with LogContext("row validation", **log_context):
                records = self.validator.validate(rows)

            with LogContext("record reconciliation", **log_context):
                summary = self.engine.reconcile(records)

            logger.info(
                f"Successfully imported {summary.total_rows} rows",
                extra={**log_context, **summary.model_dump()}
            )
            return Result.ok(summary, message=SUCCESS_MESSAGE)

        except ValidationError as e:
            logger.warning(f"Validation failed: {e}", extra=log_context)
            return Result.invalid_input(INVALID_DATA_MESSAGE)
        except (ParseError, DatabaseError) as e:
            logger.error(f"Error processing file: {e}", extra=log_context)
            return Result.server_error(PROCESSING_ERROR_MESSAGE)
        except Exception as e:
            logger.exception(f"Unexpected error during file processing", extra={**log_context, "error": str(e)})
            return Result.server_error(PROCESSING_ERROR_MESSAGE)
