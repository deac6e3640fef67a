"""Entity models for the pgauth persistence layer.

All models are frozen dataclasses.  Use :func:`dataclasses.replace`
for modifications (copy-on-write).
"""

from pgauth.models.account import Account

__all__ = [
    "Account",
]
