"""
Policy: PostgreSQL table holding every version of every policy.
Versions of one policy share policy_number and point at the root via parent_policy_id.
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Text, ForeignKey, DateTime
from sqlalchemy.dialects.postgresql import UUID

from policyhub.database.postgresql import Base
from policyhub.database.types import StatusType
from policyhub.workflow.states import PolicyStatus


class Policy(Base):
    __tablename__ = "policies"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # ── Content (opaque rich-text blobs) ──
    name = Column(Text, nullable=True)
    purpose = Column(Text, nullable=True)
    policy_text = Column(Text, nullable=True)
    procedure = Column(Text, nullable=True)

    # ── Classification ──
    policy_number = Column(String(50), nullable=True, index=True)
    policy_type = Column(String(20), nullable=False)

    status = Column(StatusType(), nullable=False, default=PolicyStatus.DRAFT, index=True)

    # ── Actors (ids issued by the external identity provider) ──
    creator_id = Column(UUID(as_uuid=True), nullable=True, index=True)
    publisher_id = Column(UUID(as_uuid=True), nullable=True)
    reviewer = Column(String(255), nullable=True)  # legacy free-text contact
    reviewer_comment = Column(Text, nullable=True)

    parent_policy_id = Column(
        UUID(as_uuid=True),
        ForeignKey("policies.id"),
        nullable=True,
        index=True,
    )

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=True,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
    published_at = Column(DateTime(timezone=True), nullable=True)
    archived_at = Column(DateTime(timezone=True), nullable=True)


# Rich-text fields edited by authors and tracked by revisions
CONTENT_FIELDS = ("name", "purpose", "policy_text", "procedure")
