"""Persistence gateways for pgauth.

The application principal may only execute stored routines, so the
gateway here wraps routine calls rather than table CRUD.
"""

from pgauth.repositories.credential import CredentialRoutines

__all__ = [
    "CredentialRoutines",
]
