"""Billing Schemas — Stripe checkout / portal / upgrade requests and redirect URLs."""

from pydantic import BaseModel, EmailStr, Field


class CheckoutRequest(BaseModel):
    price_id: str = Field(min_length=1, max_length=100)
    organization_name: str = Field(min_length=1, max_length=200)
    cnpj: str = Field(min_length=1, max_length=20)
    contact_email: EmailStr | None = None
    contact_phone: str | None = Field(None, max_length=40)


class RedirectResponse(BaseModel):
    url: str


class WebhookAck(BaseModel):
    received: bool = True
