"""Authentication and authorization.

Learn: Users log in with email/password and receive a signed JWT. Every
protected request passes the authentication gate (token → user) and, on
the admin routes, the role check. Passwords are bcrypt-hashed by the
credential store and never leave it.
"""
