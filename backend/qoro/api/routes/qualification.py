"""Qualification Routes — public lead-qualification form."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from qoro.infrastructure.database import get_db
from qoro.schemas.qualification import QualificationLeadCreate, QualificationResult
from qoro.services import qualification_service

router = APIRouter(prefix="/api/v1/qualification", tags=["qualification"])


@router.post(
    "/leads", response_model=QualificationResult,
    status_code=status.HTTP_201_CREATED,
)
async def submit_lead(
    body: QualificationLeadCreate, db: AsyncSession = Depends(get_db),
):
    return await qualification_service.submit_lead(db, body.model_dump())
