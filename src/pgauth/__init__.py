"""pgauth: PostgreSQL-backed credential engine.

Accounts, salted password hashes and every mutation of them live behind
``SECURITY DEFINER`` routines owned by a privileged role.  The Python
side borrows an unprivileged connection and calls those routines only.
"""

__version__ = "1.0.0"
