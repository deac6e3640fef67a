"""Service layer for pgauth."""

from pgauth.services.credential import CredentialEngine

__all__ = ["CredentialEngine"]
