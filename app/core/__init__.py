"""
Core Application - Infrastructure & Base Classes

Generic, reusable base classes with no bookkeeping logic. Domain apps
extend these rather than adding business rules here.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - UUIDPrimaryKeyMixin: UUID as primary key
    - OrganizationScopedMixin: Tenant column plus organization-scoped manager

Managers (import from core.managers):
    - OrganizationQuerySet: for_organization()
    - OrganizationManager: Manager using OrganizationQuerySet

Services (import from core.services):
    - BaseService: Base class for service layer (atomic)

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception with error codes
    - ValidationError: Input validation failures
    - NotFoundError: Resource not found
    - ConflictError: State conflicts

Views (import from core.views):
    - health_check: Database health endpoint

Note:
    Django models, model mixins and managers are NOT imported here to avoid
    AppRegistryNotReady errors. Import them directly from their modules.
"""

# Services (no Django model dependencies)
from .services import BaseService

# Exceptions (no Django dependencies)
from .exceptions import (
    BaseApplicationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)

__all__ = [
    # Services
    "BaseService",
    # Exceptions
    "BaseApplicationError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
]
