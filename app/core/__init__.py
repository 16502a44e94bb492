"""
Core Application - Infrastructure & Base Classes

Generic base classes shared by the domain apps. Nothing in here knows about
projects, payments or notifications.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - UUIDPrimaryKeyMixin: UUID as primary key
    - MetadataMixin: Flexible JSON metadata storage

Services (import from core.services):
    - BaseService: Base class for service layer
    - ServiceResult: Standard result wrapper for success/failure handling

Exceptions (import from core.exceptions):
    - BaseApplicationError: Root of the domain error hierarchy
    - NotFoundError, ConflictError
"""
