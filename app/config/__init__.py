# =============================================================================
# Django Project Configuration Package
# =============================================================================
# Settings and the Celery application.
#
# The Celery app is imported here so it is loaded whenever Django starts and
# `shared_task` functions bind to it.
# =============================================================================

from config.celery import app as celery_app

__all__ = ("celery_app",)
