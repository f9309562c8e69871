"""OPortal — user accounts and a permissioned, versioned content store.

Users register and log in with email/password and get JWT access/refresh
tokens. Content records are owned by their author, can be restricted to
an allow-list of users ("personalized"), and keep a log of previous
title/body versions.
"""

__version__ = "0.1.0"
