"""
Service catalog operations needed around the reservation engine.
"""

from typing import Optional

from marketplace.core.clock import new_id
from marketplace.core.exceptions import NotFoundError
from marketplace.core.logging import get_logger
from marketplace.models.service import Service
from marketplace.schemas.service import ServiceCreate, ServiceUpdate
from marketplace.stores.unit_of_work import UnitOfWork

logger = get_logger(__name__)


async def create_service(uow: UnitOfWork, data: ServiceCreate) -> Service:
    async with uow.transaction() as tx:
        service = await tx.services.add(Service(id=new_id(), **data.model_dump()))

    logger.info("service_created", service_id=service.id, vendor_id=service.vendor_id)
    return service


async def get_service(uow: UnitOfWork, service_id: str) -> Service:
    async with uow.transaction() as tx:
        service = await tx.services.get(service_id)
    if service is None:
        raise NotFoundError("Service", service_id)
    return service


async def list_services(
    uow: UnitOfWork,
    vendor_id: Optional[str] = None,
    category_id: Optional[str] = None,
    is_active: Optional[bool] = None,
) -> list[Service]:
    async with uow.transaction() as tx:
        return await tx.services.list_services(vendor_id=vendor_id, category_id=category_id, is_active=is_active)


async def deactivate_service(uow: UnitOfWork, service_id: str) -> Service:
    """
    Soft-delete: the service stops taking new bookings while existing ones
    (and their slots) are left untouched.
    """
    async with uow.transaction() as tx:
        if not await tx.services.set_active(service_id, False):
            raise NotFoundError("Service", service_id)
        service = await tx.services.get(service_id)

    logger.info("service_deactivated", service_id=service_id)
    return service


async def update_service(uow: UnitOfWork, service_id: str, data: ServiceUpdate) -> Service:
    """
    Apply a partial vendor edit. Confirmed bookings are unaffected: they keep
    the snapshot taken at confirmation.
    """
    values = data.model_dump(exclude_unset=True)
    async with uow.transaction() as tx:
        if values:
            found = await tx.services.update(service_id, **values)
        else:
            found = await tx.services.get(service_id) is not None
        if not found:
            raise NotFoundError("Service", service_id)
        service = await tx.services.get(service_id)

    logger.info("service_updated", service_id=service_id, fields=sorted(values))
    return service
