"""Insert-or-update of validated student records keyed by PRN."""

import logging
from typing import Iterable

import mysql.connector

from models import ImportSummary, StudentRecord
from utils.exceptions import DatabaseError

logger = logging.getLogger(__name__)


class ReconciliationEngine:
    """
    Writes student records to the store one at a time.

    For every record the engine looks the PRN up and either updates the
    mutable columns of the existing row or inserts a new one. A single pooled
    connection is held for the whole batch. Each lookup/write pair is
    committed on its own, so records written before a failure stay written.
    """

    def __init__(self, store):
        self.store = store
        table = store.table
        self._select_sql = f"SELECT prn FROM {table} WHERE prn = %s"
        self._update_sql = (
            f"UPDATE {table} "
            "SET rollno = %s, name = %s, class = %s, branch = %s, gender = %s, dob = %s "
            "WHERE prn = %s"
        )
        self._insert_sql = (
            f"INSERT INTO {table} (rollno, name, class, branch, gender, dob, prn) "
            "VALUES (%s, %s, %s, %s, %s, %s, %s)"
        )

    def reconcile(self, records: Iterable[StudentRecord]) -> ImportSummary:
        """
        Upsert every record in order.

        Args:
            records: Validated student records

        Returns:
            ImportSummary with insert/update/skip counts

        Raises:
            DatabaseError: On the first failing query; remaining records are not processed
        """
        summary = ImportSummary()
        logger.info("Inserting/updating data in the database")

        with self.store.connection() as conn:
            for record in records:
                summary.total_rows += 1

                if not record.prn or not record.prn.strip():
                    logger.warning(
                        "Skipping invalid record: missing PRN",
                        extra={"roll_number": record.roll_number, "student_name": record.name}
                    )
                    summary.skipped += 1
                    continue

                if self._upsert(conn, record):
                    summary.updated += 1
                else:
                    summary.inserted += 1

        logger.info(
            "Database insert/update completed successfully",
            extra=summary.model_dump()
        )
        return summary

    def _upsert(self, conn, record: StudentRecord) -> bool:
        """Write one record inside its own transaction. Returns True when it was an update."""
        values = (
            record.roll_number,
            record.name,
            record.class_name,
            record.branch,
            record.gender,
            record.date_of_birth,
            record.prn
        )
        cursor = None
        try:
            cursor = conn.cursor(buffered=True)
            cursor.execute(self._select_sql, (record.prn,))
            exists = cursor.fetchone() is not None

            if exists:
                logger.info(f"Updating record for PRN: {record.prn}")
                cursor.execute(self._update_sql, values)
            else:
                logger.info(f"Inserting new record for PRN: {record.prn}")
                cursor.execute(self._insert_sql, values)

            conn.commit()
            return exists
        except mysql.connector.Error as e:
            logger.error(f"Database operation error for PRN {record.prn}: {e}")
            try:
                conn.rollback()
            except mysql.connector.Error as rollback_error:
                logger.error(f"Rollback failed for PRN {record.prn}: {rollback_error}")
            raise DatabaseError(f"Failed to upsert PRN {record.prn}: {e}") from e
        finally:
            if cursor is not None:
                cursor.close()
