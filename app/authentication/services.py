"""
Authentication services.

This module provides the UserDirectory, the read side of the user table that
other apps consume without importing the User model directly.

Related files:
    - models.py: User, UserRole
    - notifications/services.py: resolves admin recipients through here
"""

from __future__ import annotations

import logging

from django.contrib.auth import get_user_model

logger = logging.getLogger(__name__)


class UserDirectory:
    """
    Lookups over the user table.

    Usage:
        from authentication.services import UserDirectory

        admin_ids = UserDirectory.admin_ids()
        name = UserDirectory.display_name_for(project.client)
    """

    @staticmethod
    def admin_ids() -> list[int]:
        """
        Return the ids of every active admin, oldest account first.

        Resolved on every call so newly promoted admins receive the next
        event without a restart.
        """
        User = get_user_model()
        ids = list(
            User.objects.admins().order_by("date_joined", "pk").values_list("pk", flat=True)
        )
        logger.debug(f"Resolved {len(ids)} admin recipient(s)")
        return ids

    @staticmethod
    def display_name_for(user) -> str:
        """Name used in notification templates (falls back to email)."""
        if user is None:
            return "Unknown client"
        return user.get_full_name()
