"""
Policy revisions: field-level change records with their own review lifecycle.
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Text, Integer, ForeignKey, DateTime, JSON
from sqlalchemy.dialects.postgresql import UUID

from policyhub.database.postgresql import Base


class PolicyRevision(Base):
    __tablename__ = "policy_revisions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    policy_id = Column(
        UUID(as_uuid=True),
        ForeignKey("policies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    field_name = Column(String(50), nullable=False)
    revision_number = Column(Integer, nullable=False)

    original_content = Column(Text, nullable=True)
    modified_content = Column(Text, nullable=True)
    change_type = Column(String(20), nullable=False)  # addition | deletion | modification
    change_metadata = Column(JSON, default=dict)

    status = Column(String(20), nullable=False, default="pending")  # pending | accepted | rejected
    reviewed_by = Column(UUID(as_uuid=True), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    review_comment = Column(Text, nullable=True)

    created_by = Column(UUID(as_uuid=True), nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
