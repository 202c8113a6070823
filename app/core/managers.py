"""
Custom QuerySet and Manager classes for tenant scoping.

This module provides reusable manager patterns:
- OrganizationQuerySet: Restricts rows to one organization
- OrganizationManager: Attaches OrganizationQuerySet to a model

Manager vs QuerySet:
    - QuerySet: Defines chainable methods (filter, exclude, etc.)
    - Manager: Attaches QuerySet to model, defines table-level operations

Usage:
    from core.managers import OrganizationManager

    class Invoice(BaseModel):
        organization_id = models.UUIDField()
        objects = OrganizationManager()

    Invoice.objects.for_organization(org_id).filter(status="open")
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.db import models

if TYPE_CHECKING:
    import uuid


class OrganizationQuerySet(models.QuerySet):
    """
    QuerySet with tenant scoping.

    Methods:
        for_organization(org_id): Restrict to one organization's rows
    """

    def for_organization(self, organization_id: uuid.UUID) -> OrganizationQuerySet:
        """
        Restrict the queryset to a single organization.

        Args:
            organization_id: UUID of the caller's organization

        Returns:
            Filtered queryset
        """
        return self.filter(organization_id=organization_id)


class OrganizationManager(models.Manager.from_queryset(OrganizationQuerySet)):
    """
    Manager exposing OrganizationQuerySet methods at the manager level.

    Usage:
        BankAccount.objects.for_organization(org_id).filter(is_active=True)
    """
