"""
Canonical workflow statuses shared by policies and forms.
Stored values are parsed through PolicyStatus.parse() at every boundary,
so business logic only ever sees canonical members.
"""
from enum import Enum
from typing import Tuple, Union


class PolicyStatus(str, Enum):
    DRAFT = "draft"
    UNDER_REVIEW = "under-review"
    AWAITING_CHANGES = "awaiting-changes"
    APPROVED = "approved"
    PUBLISHED = "published"
    ARCHIVED = "archived"
    REJECTED = "rejected"

    @classmethod
    def parse(cls, value: Union[str, "PolicyStatus"]) -> "PolicyStatus":
        """Map any stored spelling onto its canonical member.

        Historical rows hold `under review` (space) next to `under-review`;
        whitespace and underscores are folded into hyphens before lookup.
        """
        if isinstance(value, cls):
            return value
        if value is None:
            raise ValueError("status is required")
        key = "-".join(str(value).strip().lower().replace("_", " ").split())
        try:
            return cls(key)
        except ValueError:
            raise ValueError(f"Unknown status '{value}'") from None

    def spellings(self) -> Tuple[str, ...]:
        """Every literal that may be stored for this status."""
        return (self.value,) + LEGACY_SPELLINGS.get(self, ())

    def __str__(self) -> str:
        return self.value


LEGACY_SPELLINGS = {
    PolicyStatus.UNDER_REVIEW: ("under review",),
}

# Statuses in which content fields may be edited directly
EDITABLE_STATUSES = frozenset({PolicyStatus.DRAFT, PolicyStatus.AWAITING_CHANGES})


def canonical_status(value) -> str:
    """Canonical string form of a stored status."""
    return PolicyStatus.parse(value).value


def canonicalize_record(record: dict) -> dict:
    """Rewrite a record's stored status spelling to the canonical value, in place."""
    if record.get("status") is not None:
        record["status"] = canonical_status(record["status"])
    return record
