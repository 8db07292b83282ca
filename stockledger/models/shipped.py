"""Shipped-key list — keys an operator has confirmed as shipped.

Kept apart from the ledger: an audit dump list pasted in from paperwork,
compared against the store by hand. Adding a key here changes no item.
"""

from sqlalchemy import Column, Integer, String

from .base import Base, UTCDateTime, utcnow


class ShippedKey(Base):
    __tablename__ = "shipped_keys"
    id = Column(Integer, primary_key=True)
    item_key = Column(String(64), nullable=False, unique=True, index=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
