"""Qualification Schemas — public lead-qualification form (every answer optional)."""

from pydantic import BaseModel, Field

from qoro.schemas.common import OptionalEmail


class QualificationLeadCreate(BaseModel):
    company_size: str | None = Field(None, max_length=50)
    inefficient_processes: list[str] = Field(default_factory=list)
    current_tools: str | None = Field(None, max_length=2000)
    urgency: str | None = Field(None, max_length=50)
    interested_services: dict[str, list[str]] = Field(default_factory=dict)
    investment_range: str | None = Field(None, max_length=50)
    desired_outcome: str | None = Field(None, max_length=5000)
    full_name: str | None = Field(None, max_length=200)
    role: str | None = Field(None, max_length=100)
    email: OptionalEmail = None


class QualificationResult(BaseModel):
    success: bool
    message: str
