"""
Column types applied at the persistence boundary.
"""
from sqlalchemy import String
from sqlalchemy.types import TypeDecorator

from policyhub.workflow.states import PolicyStatus


class StatusType(TypeDecorator):
    """Workflow status column. Writes canonical spellings, reads any spelling."""

    impl = String(32)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return PolicyStatus.parse(value).value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return PolicyStatus.parse(value)
