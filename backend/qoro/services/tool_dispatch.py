"""Tool Dispatch — explicit routing from tool_name to Pulse handler.

Invariants:
    - Every tool->handler mapping is visible — no getattr magic, no auto-discovery
    - Unknown tools return UNKNOWN_TOOL error (never raises)
    - Every tool call logged to ToolCall ORM for observability

Design Decisions:
    - Explicit dict over getattr: adding a tool requires editing this dict
    - Tool call logging adds to the session without flushing: the rows are
      persisted with the conversation update that ends the ask
"""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from qoro.models.tool_call import ToolCall
from qoro.services.handle_pulse_tools import PulseToolHandlers
from qoro.services.org_context import ActorContext

logger = logging.getLogger(__name__)


class ToolDispatch:
    """Routes tool_name -> handler. Explicit registration, no auto-discovery."""

    def __init__(
        self, db: AsyncSession, actor: ActorContext,
        conversation_id: UUID | None = None,
    ):
        self._db = db
        self._conversation_id = conversation_id
        handlers = PulseToolHandlers(db, actor)

        self._handlers = {
            "get_crm_summary": handlers.get_crm_summary,
            "list_tasks": handlers.list_tasks,
            "create_task": handlers.create_task,
            "list_accounts": handlers.list_accounts,
            "get_finance_summary": handlers.get_finance_summary,
            "list_suppliers": handlers.list_suppliers,
        }

    @property
    def tool_names(self) -> frozenset[str]:
        return frozenset(self._handlers)

    async def execute(self, tool_name: str, input_data: dict) -> dict:
        """Route tool_name to handler. Returns result dict. Logs every call."""
        handler = self._handlers.get(tool_name)
        if not handler:
            result = {
                "status": "error",
                "error_code": "UNKNOWN_TOOL",
                "message": f"Tool '{tool_name}' does not exist.",
            }
            self.log_tool_call(tool_name, input_data, result)
            return result
        result = await handler(input_data)
        self.log_tool_call(tool_name, input_data, result)
        return result

    def log_tool_call(
        self, tool_name: str, input_data: dict, result: dict,
    ) -> None:
        if not self._conversation_id:
            return
        is_error = result.get("status") == "error" or "error" in result
        error_code = result.get("error_code")
        if error_code is None and isinstance(result.get("error"), dict):
            error_code = result["error"].get("code")
        self._db.add(ToolCall(
            conversation_id=self._conversation_id,
            tool_name=tool_name,
            tool_input=input_data,
            tool_output=None if is_error else result,
            error_code=error_code if is_error else None,
        ))
