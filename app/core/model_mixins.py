"""
Model mixins providing reusable functionality for Django models.

These are generic infrastructure classes with no domain-specific logic.

Available Mixins:
    UUIDPrimaryKeyMixin: Use UUID as primary key
    OrganizationScopedMixin: Tenant column plus organization-scoped manager

Usage:
    from core.models import BaseModel
    from core.model_mixins import OrganizationScopedMixin, UUIDPrimaryKeyMixin

    class Document(UUIDPrimaryKeyMixin, OrganizationScopedMixin, BaseModel):
        name = models.CharField(max_length=100)

    Document.objects.for_organization(org_id).filter(name="Report")

Note:
    - Always list mixins before BaseModel in inheritance
    - Mixins are abstract and don't create database tables
"""

from __future__ import annotations

import uuid

from django.db import models

from core.managers import OrganizationManager


class UUIDPrimaryKeyMixin(models.Model):
    """
    Use UUID as primary key instead of auto-increment integer.

    UUIDs are non-guessable and can be generated before the insert,
    which lets a service hand out correlated identifiers (for example a
    transfer pair id) before any row exists.

    Fields:
        id: UUIDField as primary key (auto-generated)
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for this record",
    )

    class Meta:
        abstract = True


class OrganizationScopedMixin(models.Model):
    """
    Attach a record to a tenant organization.

    The organization itself lives in an external identity service, so it is
    stored as a bare UUID rather than a foreign key. Every service lookup
    goes through ``objects.for_organization()`` so cross-tenant rows are
    invisible.

    Fields:
        organization_id: UUID of the owning organization (indexed)
    """

    organization_id = models.UUIDField(
        db_index=True,
        help_text="UUID of the organization that owns this record",
    )

    objects = OrganizationManager()

    class Meta:
        abstract = True
