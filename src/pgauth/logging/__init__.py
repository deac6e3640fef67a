"""Logging subsystem for pgauth.

Public API::

    from pgauth.logging import configure_logging

    configure_logging(settings.logging)
"""

from pgauth.logging.setup import configure_logging

__all__ = ["configure_logging"]
