"""
schemas/errors.py — Structured error response model

Shared by the HTTPException and StockLedgerError handlers in main.py.
"""

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    error: str
    status_code: int
    code: str | None = None
    detail: list | None = None
