"""
Student Records Importer

This package provides an API for uploading student spreadsheets and
reconciling them with the student database. Rows are parsed from the
first sheet, validated as a batch, then inserted or updated by PRN.

Key modules:
- main.py: FastAPI application with the upload, home and health endpoints
- excel_file_process.py: Workbook parsing, date normalization, row validation and the import pipeline
- reconciliation.py: Insert-or-update of student records keyed by PRN
- student_store.py: MySQL connection pool with explicit open/close lifecycle
- models.py: StudentRecord and ImportSummary schemas
- config.py: Environment-driven settings
- utils/result.py: Result pattern implementation for error handling
- utils/exceptions.py: Import pipeline error types
"""
