"""
Forms: numbered documents that follow the policy workflow without version families.
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Text, DateTime
from sqlalchemy.dialects.postgresql import UUID

from policyhub.database.postgresql import Base
from policyhub.database.types import StatusType
from policyhub.workflow.states import PolicyStatus


class Form(Base):
    __tablename__ = "forms"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=True)
    purpose = Column(Text, nullable=True)
    form_content = Column(Text, nullable=True)
    form_number = Column(String(50), nullable=True, index=True)
    form_type = Column(String(50), nullable=False)
    reviewer = Column(String(255), nullable=True)
    reviewer_comment = Column(Text, nullable=True)
    status = Column(StatusType(), nullable=False, default=PolicyStatus.DRAFT, index=True)
    creator_id = Column(UUID(as_uuid=True), nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=True,
        default=lambda: datetime.now(timezone.utc),
    )
