"""
Named counters backing the numbering RPCs.
"""
from sqlalchemy import Column, String, Integer

from policyhub.database.postgresql import Base


class NumberSequence(Base):
    __tablename__ = "number_sequences"

    name = Column(String(120), primary_key=True)  # e.g. "policy:HR", "revision:<policy_id>"
    last_value = Column(Integer, nullable=False, default=0)
