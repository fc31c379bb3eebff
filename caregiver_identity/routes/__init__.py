"""
API route modules.

Routers live in ``routes.auth`` and ``routes.invitations``; they are
imported by the application module, not here, since the authentication
dependency imports ``routes.errors``.
"""
