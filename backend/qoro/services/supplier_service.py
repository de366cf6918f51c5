"""Supplier Service — counterparties of payable bills."""

import logging
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from qoro.core.domain_types import EntityType
from qoro.core.errors import ConflictError
from qoro.models.bill import Bill
from qoro.models.supplier import Supplier
from qoro.services.org_context import ActorContext, get_owned

logger = logging.getLogger(__name__)

NOT_FOUND = "Fornecedor não encontrado ou acesso negado."


async def create_supplier(
    db: AsyncSession, actor: ActorContext, data: dict,
) -> Supplier:
    supplier = Supplier(organization_id=actor.require_organization(), **data)
    db.add(supplier)
    await db.commit()
    await db.refresh(supplier)
    logger.info("Supplier created", extra=actor.log_extra())
    return supplier


async def list_suppliers(
    db: AsyncSession, actor: ActorContext, active_only: bool = False,
) -> list[Supplier]:
    if not actor.has_organization:
        return []
    query = select(Supplier).where(Supplier.organization_id == actor.organization_id)
    if active_only:
        query = query.where(Supplier.is_active.is_(True))
    result = await db.execute(query.order_by(Supplier.name))
    return list(result.scalars().all())


async def update_supplier(
    db: AsyncSession, actor: ActorContext, supplier_id: UUID, changes: dict,
) -> Supplier:
    supplier = await get_owned(db, Supplier, supplier_id, actor, NOT_FOUND)
    for key, value in changes.items():
        setattr(supplier, key, value)
    await db.commit()
    await db.refresh(supplier)
    return supplier


async def delete_supplier(
    db: AsyncSession, actor: ActorContext, supplier_id: UUID,
) -> None:
    supplier = await get_owned(db, Supplier, supplier_id, actor, NOT_FOUND)
    bills = await db.scalar(
        select(func.count()).select_from(Bill)
        .where(Bill.entity_type == EntityType.SUPPLIER.value)
        .where(Bill.entity_id == supplier.id),
    )
    if bills:
        raise ConflictError(
            "Não é possível excluir um fornecedor com contas vinculadas.",
            "SUPPLIER_IN_USE",
        )
    await db.delete(supplier)
    await db.commit()
