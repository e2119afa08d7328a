"""
Role → capability mapping.
The four roles form a ladder; maker/checker is the one relational exception
and lives in workflow.guard, not here.
"""
from enum import Enum


class Role(str, Enum):
    READ_ONLY = "read-only"
    EDIT = "edit"
    PUBLISH = "publish"
    SUPER_ADMIN = "super-admin"


class Capability(str, Enum):
    VIEW = "view"            # read policies, forms, revisions
    AUTHOR = "author"        # create and edit drafts, record revisions
    REVIEW = "review"        # approve / reject / publish / request changes
    ADMINISTER = "administer"  # archive, restore, delete; exempt from maker/checker


ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.READ_ONLY: frozenset({Capability.VIEW}),
    Role.EDIT: frozenset({Capability.VIEW, Capability.AUTHOR}),
    Role.PUBLISH: frozenset({Capability.VIEW, Capability.AUTHOR, Capability.REVIEW}),
    Role.SUPER_ADMIN: frozenset({
        Capability.VIEW, Capability.AUTHOR, Capability.REVIEW, Capability.ADMINISTER,
    }),
}


def capabilities_for(role: Role) -> frozenset[Capability]:
    return ROLE_CAPABILITIES.get(Role(role), frozenset())


def has_capability(role: Role, capability: Capability) -> bool:
    return capability in capabilities_for(role)
