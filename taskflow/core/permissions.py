"""Static role → capability table.

Hand-maintained; Permission records in the store are informational and
not consulted here.
"""

from __future__ import annotations

from taskflow.data.models import ROLES

# feature -> roles allowed
CAPABILITIES: dict[str, tuple[str, ...]] = {
    "View Calendar": ("admin", "manager", "staff", "guest"),
    "Create Events": ("admin", "manager", "staff"),
    "Manage Users": ("admin", "manager"),
    "Manage Event Types": ("admin", "manager"),
    "Manage Settings": ("admin",),
}

ADMIN_SECTION_ROLES = ("admin", "manager")


def can_access(role: str, feature: str) -> bool:
    return role in CAPABILITIES.get(feature, ())


def visible_sections(role: str) -> list[str]:
    """Navigation entries shown to a role."""
    sections = ["Calendar", "Tasks"]
    if role in ADMIN_SECTION_ROLES:
        sections += ["Users", "Settings"]
    return sections


def capability_matrix() -> list[tuple[str, list[bool]]]:
    """Rows of (feature, [allowed per role in ROLES order])."""
    return [
        (feature, [role in roles for role in ROLES])
        for feature, roles in CAPABILITIES.items()
    ]
