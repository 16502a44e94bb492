"""
Authentication application.

Key components:
    - User model: Email-based user with a portal role (client or admin)
    - UserDirectory: Admin lookups and display names for other apps

Usage:
    from authentication.models import User, UserRole
    from authentication.services import UserDirectory
"""
