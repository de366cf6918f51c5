"""Shared schema building blocks — ORM-backed responses, UTC datetimes, optional e-mails."""

from datetime import datetime
from typing import Annotated
from uuid import UUID

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, EmailStr, Field

from qoro.core.time_utils import ensure_utc

# bcrypt only reads the first 72 bytes of a password
PASSWORD_MAX_BYTES = 72


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _fits_bcrypt(value: str) -> str:
    if len(value.encode()) > PASSWORD_MAX_BYTES:
        raise ValueError(f"password cannot be longer than {PASSWORD_MAX_BYTES} bytes")
    return value


UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]
OptionalEmail = Annotated[EmailStr | None, BeforeValidator(_blank_to_none)]
OptionalText = Annotated[str | None, BeforeValidator(_blank_to_none)]
Money = Annotated[float, Field(ge=0)]
PositiveMoney = Annotated[float, Field(gt=0)]
Password = Annotated[str, Field(min_length=8), AfterValidator(_fits_bcrypt)]
LoginPassword = Annotated[str, Field(min_length=1), AfterValidator(_fits_bcrypt)]


class ORMResponse(BaseModel):
    """Response model populated straight from an ORM row."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    created_at: datetime
    updated_at: datetime | None = None


class Address(BaseModel):
    street: str | None = None
    number: str | None = None
    neighborhood: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None


class DeleteResult(BaseModel):
    id: UUID
    success: bool = True
