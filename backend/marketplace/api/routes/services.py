"""
Service catalog endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, status

from marketplace.api.deps import get_unit_of_work
from marketplace.schemas.service import ServiceCreate, ServiceResponse, ServiceUpdate
from marketplace.services import catalog_service
from marketplace.stores.unit_of_work import UnitOfWork

router = APIRouter(prefix="/services", tags=["Services"])


@router.post("/", response_model=ServiceResponse, status_code=status.HTTP_201_CREATED)
async def create_service(payload: ServiceCreate, uow: UnitOfWork = Depends(get_unit_of_work)):
    return await catalog_service.create_service(uow, payload)


@router.get("/", response_model=list[ServiceResponse])
async def list_services(
    vendor_id: Optional[str] = None,
    category_id: Optional[str] = None,
    is_active: Optional[bool] = None,
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    return await catalog_service.list_services(uow, vendor_id=vendor_id, category_id=category_id, is_active=is_active)


@router.get("/{service_id}", response_model=ServiceResponse)
async def get_service(service_id: str, uow: UnitOfWork = Depends(get_unit_of_work)):
    return await catalog_service.get_service(uow, service_id)


@router.patch("/{service_id}", response_model=ServiceResponse)
async def update_service(service_id: str, payload: ServiceUpdate, uow: UnitOfWork = Depends(get_unit_of_work)):
    """Partial edit. Confirmed bookings keep the snapshot taken at confirmation."""
    return await catalog_service.update_service(uow, service_id, payload)


@router.post("/{service_id}/deactivate", response_model=ServiceResponse)
async def deactivate_service(service_id: str, uow: UnitOfWork = Depends(get_unit_of_work)):
    """Stop taking new bookings. Existing bookings are unaffected."""
    return await catalog_service.deactivate_service(uow, service_id)
