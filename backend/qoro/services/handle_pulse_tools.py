"""Pulse Tool Handlers — business-data reads (and task creation) for the assistant.

Invariants:
    - Every handler is scoped to the actor's organization through the regular services
    - A tool touching a module the actor cannot access raises PermissionDeniedError
      (tool_dispatch turns it into an error result for the model)
    - Results are JSON-ready: ids and dates as strings
"""

import logging
from datetime import datetime, time, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from qoro.core.domain_types import Module, TaskPriority
from qoro.core.enforce_plan import check_module_access
from qoro.services import (
    crm_service, finance_service, supplier_service, task_service,
)
from qoro.services.org_context import ActorContext

logger = logging.getLogger(__name__)

MAX_LISTED_TASKS = 50


def _iso(value) -> str | None:
    return value.isoformat() if value is not None else None


class PulseToolHandlers:
    """Tool handlers bound to one actor and one DB session."""

    def __init__(self, db: AsyncSession, actor: ActorContext):
        self.db = db
        self.actor = actor

    def _require(self, module: Module) -> None:
        check_module_access(self.actor.plan_id, self.actor.permissions, module)

    async def get_crm_summary(self, input_data: dict) -> dict:
        self._require(Module.CRM)
        metrics = await crm_service.get_crm_metrics(self.db, self.actor)
        return {
            "total_customers": metrics["total_customers"],
            "active_leads": metrics["active_leads"],
            "won_customers": metrics["won_customers"],
            "win_rate_percent": metrics["win_rate"],
        }

    async def list_tasks(self, input_data: dict) -> dict:
        self._require(Module.TASK)
        tasks = await task_service.list_tasks(self.db, self.actor)
        return {
            "count": len(tasks),
            "tasks": [
                {
                    "title": t["title"],
                    "status": t["status"],
                    "priority": t["priority"],
                    "due_date": _iso(t["due_date"]),
                    "responsible": t["responsible_user_name"],
                }
                for t in tasks[:MAX_LISTED_TASKS]
            ],
        }

    async def create_task(self, input_data: dict) -> dict:
        self._require(Module.TASK)
        title = str(input_data.get("title") or "").strip()
        if not title:
            return {
                "status": "error", "error_code": "INVALID_INPUT",
                "message": "title is required",
            }
        try:
            priority = TaskPriority(input_data.get("priority") or "medium")
        except ValueError:
            priority = TaskPriority.MEDIUM
        due_date = None
        if input_data.get("due_date"):
            try:
                due_date = datetime.combine(
                    datetime.fromisoformat(str(input_data["due_date"])[:10]).date(),
                    time(12, 0), timezone.utc,
                )
            except ValueError:
                return {
                    "status": "error", "error_code": "INVALID_INPUT",
                    "message": "due_date must be YYYY-MM-DD",
                }
        task = await task_service.create_task(self.db, self.actor, {
            "title": title[:300],
            "description": input_data.get("description") or None,
            "priority": priority.value,
            "due_date": due_date,
            "responsible_user_id": self.actor.user_id,
        })
        return {
            "status": "ok",
            "task_id": str(task["id"]),
            "title": task["title"],
            "due_date": _iso(task["due_date"]),
        }

    async def list_accounts(self, input_data: dict) -> dict:
        self._require(Module.FINANCE)
        accounts = await finance_service.list_accounts(self.db, self.actor)
        return {
            "accounts": [
                {
                    "name": a.name,
                    "type": a.type,
                    "bank": a.bank,
                    "balance": a.balance,
                    "is_active": a.is_active,
                }
                for a in accounts
            ],
        }

    async def get_finance_summary(self, input_data: dict) -> dict:
        self._require(Module.FINANCE)
        metrics = await finance_service.get_finance_metrics(self.db, self.actor)
        return {
            "total_balance": metrics["total_balance"],
            "total_income": metrics["total_income"],
            "total_expense": metrics["total_expense"],
            "net_profit": metrics["net_profit"],
            "period_start": _iso(metrics["period_start"]),
            "period_end": _iso(metrics["period_end"]),
        }

    async def list_suppliers(self, input_data: dict) -> dict:
        self._require(Module.FINANCE)
        suppliers = await supplier_service.list_suppliers(
            self.db, self.actor, active_only=True,
        )
        return {
            "suppliers": [
                {
                    "name": s.name,
                    "email": s.email,
                    "phone": s.phone,
                    "payment_terms": s.payment_terms,
                }
                for s in suppliers
            ],
        }
