"""Database subsystem for pgauth.

Public API::

    from pgauth.db import init_database, SchemaInstaller, PrivilegeAudit
"""

from pgauth.db.audit import AuditReport, PrivilegeAudit
from pgauth.db.init import check_connection, init_database
from pgauth.db.installer import InstallError, SchemaInstaller

__all__ = [
    "AuditReport",
    "InstallError",
    "PrivilegeAudit",
    "SchemaInstaller",
    "check_connection",
    "init_database",
]
