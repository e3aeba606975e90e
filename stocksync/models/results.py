"""Outcome models for batch operations (bulk adjust/set, CSV import)."""

from typing import Optional

from pydantic import BaseModel, Field


class RowError(BaseModel):
    """One failed row of a batch: where it was and why it failed."""

    row: int
    label: str = ""
    message: str
    code: Optional[str] = None


class BatchResult(BaseModel):
    """Partial failure is a reported outcome, not an exception."""

    operation: str
    success_count: int = 0
    error_count: int = 0
    errors: list[RowError] = Field(default_factory=list)

    @property
    def attempted(self) -> int:
        return self.success_count + self.error_count

    def record_success(self) -> None:
        self.success_count += 1

    def record_error(self, row: int, message: str, label: str = "", code: Optional[str] = None) -> None:
        self.error_count += 1
        self.errors.append(RowError(row=row, label=label, message=message, code=code))
