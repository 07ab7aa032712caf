"""
ServiceStore: catalog reads and writes the engine and vendor tooling need.
"""

from typing import Any, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.models.service import Service


class ServiceStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, service: Service) -> Service:
        self.session.add(service)
        await self.session.flush()
        return service

    async def get(self, service_id: str) -> Optional[Service]:
        result = await self.session.execute(
            select(Service).where(Service.id == service_id).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_services(
        self,
        vendor_id: Optional[str] = None,
        category_id: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> list[Service]:
        query = select(Service)
        if vendor_id is not None:
            query = query.where(Service.vendor_id == vendor_id)
        if category_id is not None:
            query = query.where(Service.category_id == category_id)
        if is_active is not None:
            query = query.where(Service.is_active == is_active)
        result = await self.session.execute(query.order_by(Service.title, Service.id))
        return list(result.scalars().all())

    async def update(self, service_id: str, **values: Any) -> bool:
        result = await self.session.execute(
            update(Service)
            .where(Service.id == service_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def set_active(self, service_id: str, is_active: bool) -> bool:
        result = await self.session.execute(
            update(Service)
            .where(Service.id == service_id)
            .values(is_active=is_active)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
