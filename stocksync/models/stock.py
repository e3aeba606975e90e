"""Stock models: subjects, rows, movements and mutation results."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel

SubjectKind = Literal["product", "variation"]


class StockSubject(BaseModel):
    """What a stock row counts: a simple product or a single variation."""

    kind: SubjectKind
    id: str

    model_config = {"frozen": True}

    @classmethod
    def product(cls, product_id: str) -> "StockSubject":
        return cls(kind="product", id=product_id)

    @classmethod
    def variation(cls, variation_id: str) -> "StockSubject":
        return cls(kind="variation", id=variation_id)


class StockKey(BaseModel):
    """(subject, location) pair; at most one stock row exists per key."""

    subject: StockSubject
    location_id: str

    model_config = {"frozen": True}

    def label(self) -> str:
        return f"{self.subject.kind}:{self.subject.id}@{self.location_id}"


class StockRow(BaseModel):
    """Quantity record for one (subject, location) pair."""

    subject: StockSubject
    location_id: str
    quantity: int = 0
    reserved_quantity: int = 0
    id: Optional[str] = None

    model_config = {"frozen": True}

    @property
    def key(self) -> StockKey:
        return StockKey(subject=self.subject, location_id=self.location_id)


class StockMovement(BaseModel):
    """Append-only audit record of one stock change."""

    subject: StockSubject
    location_id: str
    delta: int
    quantity_before: int
    quantity_after: int
    reason: str
    note: Optional[str] = None
    actor_id: Optional[str] = None
    created_at: Optional[datetime] = None
    id: Optional[str] = None

    model_config = {"frozen": True}


class StockChange(BaseModel):
    """Result of a single atomic stock mutation: the row after the write and its movement."""

    row: StockRow
    movement: StockMovement
    created_row: bool = False
