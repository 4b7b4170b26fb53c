"""
Authentication for the Growth Coach API.

Design goals:
- LinkedIn OAuth behind an explicit provider interface (test doubles welcome).
- Server-side sessions, cookie carries only a signed opaque id (HttpOnly, SameSite=Lax).
- Local username/password kept for demos, bcrypt-hashed.
"""
