"""Qualification Service — stores public lead-qualification answers.

Invariants:
    - Never raises to the caller: failures are logged and reported as success=False
    - Leads are stored with status `new`
"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from qoro.models.qualification_lead import QualificationLead

logger = logging.getLogger(__name__)


async def submit_lead(db: AsyncSession, data: dict) -> dict:
    try:
        lead = QualificationLead(status="new", **data)
        db.add(lead)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Failed to store qualification lead: {e}", exc_info=True)
        return {
            "success": False,
            "message": "Não foi possível enviar suas respostas. Tente novamente.",
        }
    logger.info("Qualification lead stored")
    return {"success": True, "message": "Respostas enviadas com sucesso!"}
