"""
Tests for authentication app.

This package contains test modules for:
- test_managers.py: UserManager and the admins() lookup
- test_services.py: UserDirectory tests
"""
