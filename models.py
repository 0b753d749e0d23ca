from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class StudentRecord(BaseModel):
    """
    One student row, keyed by PRN.

    Field aliases are the spreadsheet/table column names, so a parsed row
    can be validated directly with ``StudentRecord.model_validate(row)``.

    Attributes:
        roll_number: Roll number (column ``rollno``)
        name: Student name
        class_name: Class (column ``class``)
        branch: Branch of study
        gender: Gender
        date_of_birth: Date of birth, ISO ``YYYY-MM-DD`` when known (column ``dob``)
        prn: Permanent registration number, the unique key
    """
    model_config = ConfigDict(populate_by_name=True)

    roll_number: str = Field(alias="rollno")
    name: str
    class_name: str = Field(alias="class")
    branch: str
    gender: str
    date_of_birth: str = Field(alias="dob")
    prn: str

    @field_validator("*", mode="before")
    @classmethod
    def _as_text(cls, value: Any) -> Any:
        # Numeric cells such as a roll number typed as 12 arrive as int/float
        if isinstance(value, bool):
            return value
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        if isinstance(value, (int, float)):
            return str(value)
        if isinstance(value, str):
            return value.strip()
        return value


class ImportSummary(BaseModel):
    """Counts reported back after a batch has been reconciled."""
    total_rows: int = 0
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
