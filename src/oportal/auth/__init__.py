"""Authentication and session lifecycle.

Learn: Users → email/password → JWT access/refresh tokens.
- tokens.py   — signing, verification, TTLs (stateless)
- password.py — bcrypt hashing
- cookies.py  — HttpOnly cookie transport for browser clients
- dependencies.py — FastAPI Depends() that resolve the current user

The stateful half of a session — which refresh tokens are still
outstanding — lives on the User row and is managed by AuthService.
"""
