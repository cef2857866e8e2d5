"""
Role hierarchy used to gate leadership, pastoral and admin routes.
"""
from typing import Optional

OWNER = "owner"
ADMIN = "admin"
PASTOR = "pastor"
LEADER = "leader"
MEMBER = "member"
INTERN = "intern"
ATTENDEE = "attendee"

PRIMARY_ROLES = (OWNER, ADMIN, PASTOR, LEADER, MEMBER, INTERN, ATTENDEE)

# Older role names still found on imported accounts
LEGACY_ROLE_MAPPING = {
    "system-admin": OWNER,
    "lead-pastor": PASTOR,
    "board-of-elders": PASTOR,
    "leadership-team": LEADER,
    "ministry-leader": LEADER,
    "active-church-participant": MEMBER,
    "dream-team": MEMBER,
    "regular-attendee": ATTENDEE,
}

ROLE_LEVELS = {
    OWNER: 100,
    ADMIN: 90,
    PASTOR: 80,
    LEADER: 60,
    MEMBER: 40,
    INTERN: 30,
    ATTENDEE: 20,
}

# Every accepted role name, legacy ones included
ROLE_HIERARCHY = {
    **ROLE_LEVELS,
    **{legacy: ROLE_LEVELS[primary] for legacy, primary in LEGACY_ROLE_MAPPING.items()},
}


def normalize_role(role: Optional[str]) -> str:
    """Map legacy or unknown role names onto a primary role."""
    if not role:
        return ATTENDEE
    key = role.strip().lower()
    if key in ROLE_LEVELS:
        return key
    return LEGACY_ROLE_MAPPING.get(key, ATTENDEE)


def role_level(role: Optional[str]) -> int:
    return ROLE_LEVELS[normalize_role(role)]


def has_role(role: Optional[str], minimum: str) -> bool:
    """True when ``role`` sits at or above ``minimum`` in the hierarchy."""
    return role_level(role) >= ROLE_LEVELS[minimum]
