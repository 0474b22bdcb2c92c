"""
Application Use Cases: Tenant Registry

Tenants are the isolation boundary for all other records. They are created
active, toggled between active and inactive, and never deleted.
"""

import logging

from django.db import IntegrityError, transaction

from balancing.domain.exceptions import InvalidTenant, NotFound, ValidationError
from balancing.models import Tenant

logger = logging.getLogger(__name__)


def create_tenant(name, identifier, settings=None):
    try:
        with transaction.atomic():
            tenant = Tenant.objects.create(
                name=name,
                identifier=identifier,
                settings=settings or {},
                status=Tenant.State.ACTIVE,
            )
    except IntegrityError:
        logger.warning("Tenant identifier already registered: %s", identifier)
        raise ValidationError(f"Tenant identifier already registered: {identifier}")
    logger.info("Tenant created: id=%s identifier=%s", tenant.id, identifier)
    return tenant


def get_tenant(tenant_id):
    tenant = Tenant.objects.find(tenant_id)
    if tenant is None:
        raise NotFound("Tenant not found")
    return tenant


def list_tenants():
    return list(Tenant.objects.all())


def update_tenant(tenant_id, name=None, settings=None):
    tenant = get_tenant(tenant_id)
    if name is not None:
        tenant.name = name
    if settings is not None:
        tenant.settings = settings
    tenant.save()
    logger.info("Tenant updated: id=%s", tenant.id)
    return tenant


def set_tenant_status(tenant_id, status):
    if status not in Tenant.State.values:
        raise ValidationError(f"Unknown tenant status: {status}")
    tenant = get_tenant(tenant_id)
    tenant.status = status
    tenant.save(update_fields=["status", "updated_at"])
    logger.info("Tenant status changed: id=%s status=%s", tenant.id, status)
    return tenant


def require_active_tenant(tenant_id):
    """Resolve the tenant a mutation is scoped to; it must exist and be active."""
    tenant = Tenant.objects.find(tenant_id)
    if tenant is None or not tenant.is_active:
        logger.warning("Rejected operation for unknown or inactive tenant: %s", tenant_id)
        raise InvalidTenant("Tenant is unknown or inactive")
    return tenant
