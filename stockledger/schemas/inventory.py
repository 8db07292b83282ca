"""
schemas/inventory.py — Pydantic models for search, validation and movement endpoints

Validates key lists and movement operation payloads.

Business Rules:
- Key lists must contain at least one entry; blanks are dropped downstream
- Batch requests are capped at 10,000 keys
- Transfers require a target location id
- Status updates must name at least one of grade / lock_status

Called by: routers/search.py, routers/movements.py
Depends on: pydantic
"""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator

MAX_KEYS_PER_REQUEST = 10_000


class KeyListRequest(BaseModel):
    keys: list[str] = Field(min_length=1, max_length=MAX_KEYS_PER_REQUEST)


class ShipRequest(KeyListRequest):
    note: str | None = Field(default=None, max_length=2000)
    performed_by: str | None = Field(default=None, max_length=255)


class RemoveRequest(ShipRequest):
    pass


class TransferRequest(ShipRequest):
    to_location_id: int


class UpdateStatusRequest(BaseModel):
    key: str = Field(min_length=1, max_length=64)
    grade: str | None = Field(default=None, max_length=50)
    lock_status: str | None = Field(default=None, max_length=50)
    note: str | None = Field(default=None, max_length=2000)
    performed_by: str | None = Field(default=None, max_length=255)

    @model_validator(mode="after")
    def _one_field(self):
        if self.grade is None and self.lock_status is None:
            raise ValueError("Provide grade and/or lock_status")
        return self


class KeyFailure(BaseModel):
    key: str
    error: str
    code: str | None = None


class MovementOpResponse(BaseModel, extra="allow"):
    success: bool
    movements: list[dict] = Field(default_factory=list)
    errors: list[KeyFailure] = Field(default_factory=list)


class ValidationResultOut(BaseModel):
    key: str
    found: bool
    source: str
    model: str | None = None
    capacity: str | None = None
    color: str | None = None
    grade: str | None = None
    lock_status: str | None = None
    supplier: str | None = None
    status: str | None = None


class ValidationSummary(BaseModel):
    total: int = 0
    primary: int = 0
    secondary: int = 0
    unknown: int = 0


class ValidationResponse(BaseModel):
    results: list[ValidationResultOut] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    summary: ValidationSummary
    used_cache: bool = False
