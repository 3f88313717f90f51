"""
Authorization Utilities
Helper functions for user authorization.
"""

from typing import AbstractSet


def normalize_identity(identity: str) -> str:
    """Lower-case a telegram handle and drop its leading @."""
    identity = identity.strip().lower()
    if identity.startswith("@"):
        identity = identity[1:]
    return identity


def is_authorized(identity: str, masters: AbstractSet[str]) -> bool:
    """Check if the sender's handle is one of the configured masters."""
    identity = normalize_identity(identity or "")
    if not identity:
        return False
    if identity in masters:
        return True
    return any(normalize_identity(master) == identity for master in masters)
