"""Email Outbox — queues transactional e-mails into the `mail` table.

Invariants:
    - Only adds rows and flushes; the caller's commit delivers them together
      with the change that caused the e-mail
    - Template names are the ones the mail relay knows: convite, verificar_email,
      redefinir_senha
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from qoro.models.outbound_email import OutboundEmail

logger = logging.getLogger(__name__)

TEMPLATE_INVITE = "convite"
TEMPLATE_VERIFY_EMAIL = "verificar_email"
TEMPLATE_RESET_PASSWORD = "redefinir_senha"


async def queue_email(
    db: AsyncSession, to: str, template_name: str, template_data: dict,
) -> OutboundEmail:
    mail = OutboundEmail(
        to=to, template_name=template_name, template_data=template_data,
        status="queued",
    )
    db.add(mail)
    await db.flush()
    logger.info(f"E-mail queued: {template_name}")
    return mail


async def queue_invitation(
    db: AsyncSession, *, to: str, admin_name: str, organization_name: str,
    action_url: str,
) -> OutboundEmail:
    return await queue_email(db, to, TEMPLATE_INVITE, {
        "admin_name": admin_name,
        "organization_name": organization_name,
        "action_url": action_url,
    })


async def queue_verification(
    db: AsyncSession, *, to: str, name: str, action_url: str,
) -> OutboundEmail:
    return await queue_email(db, to, TEMPLATE_VERIFY_EMAIL, {
        "name": name, "action_url": action_url,
    })


async def queue_password_reset(
    db: AsyncSession, *, to: str, name: str, action_url: str,
) -> OutboundEmail:
    return await queue_email(db, to, TEMPLATE_RESET_PASSWORD, {
        "name": name, "action_url": action_url,
    })
