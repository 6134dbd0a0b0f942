#!/usr/bin/env python3
"""Issue a bearer token for the control plane API.

Usage:
    python scripts/issue_token.py <subject> [role ...]
    python scripts/issue_token.py --roles

Roles default to "user". The signing key comes from EPHEMERA_JWT_SECRET_KEY.
"""
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from ephemera.models.principal import AVAILABLE_ROLES, Role
from ephemera.utils.security import create_access_token


def issue_token(subject: str, roles=None):
    """Print a signed token for the subject."""
    roles = roles or [Role.USER.value]
    try:
        token = create_access_token(subject, roles)
    except ValueError as e:
        print(f"Error: {e}")
        return False

    print(token)
    return True


def list_roles():
    """List all known roles."""
    print("\nAvailable roles:")
    print("-" * 60)
    for role in AVAILABLE_ROLES:
        print(f"  {role}")
    print("-" * 60)


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)
    if sys.argv[1] == "--roles":
        list_roles()
    else:
        ok = issue_token(sys.argv[1], sys.argv[2:])
        sys.exit(0 if ok else 1)
