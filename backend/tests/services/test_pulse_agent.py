"""Pulse Agent — tests for the tool-use loop, fallbacks, tool dispatch and titles.

Tests cover:
    - Text-only response ends the loop after one call
    - tool_use -> handler -> tool_result round trip, logged to ToolCall
    - Tool errors (unknown tool, module denied) become results, never exceptions
    - API failure falls back to one call without tools; a second failure is 503
    - Title generation, and the word fallback when the model echoes or fails
"""

import pytest
from sqlalchemy import select

from qoro.config import get_settings
from qoro.core.errors import AnthropicAPIError, AssistantUnavailableError, ErrorContext
from qoro.models.conversation import Conversation
from qoro.models.tool_call import ToolCall
from qoro.models.task import Task
from qoro.services.pulse_agent import EMPTY_ANSWER, PulseAgent
from qoro.services.tool_dispatch import ToolDispatch
from tests.services.mock_anthropic import (
    MockAnthropicClient, mixed_response, text_response, tool_response,
)


def _history(text="Como estão minhas vendas?"):
    return [{"role": "user", "content": text}]


def _api_error():
    return AnthropicAPIError("overloaded", "overloaded_error")


async def _conversation(db, actor):
    conversation = Conversation(
        organization_id=actor.organization_id, user_id=actor.user_id,
        title="Vendas", messages=[],
    )
    db.add(conversation)
    await db.commit()
    return conversation


async def _tool_calls(db) -> list[ToolCall]:
    result = await db.execute(select(ToolCall).order_by(ToolCall.created_at))
    return list(result.scalars().all())


# ─── Loop ────────────────────────────────────────────────────────

async def test_text_only_answer(test_db, performance_actor):
    client = MockAnthropicClient([text_response("Tudo certo por aqui.")])
    agent = PulseAgent(test_db, client, get_settings())

    answer = await agent.answer(performance_actor, None, _history())

    assert answer == "Tudo certo por aqui."
    assert len(client.calls) == 1
    assert client.calls[0]["tools"]
    assert "Empresa Ana Performance" in client.calls[0]["system"]


async def test_tool_round_trip_logged(test_db, performance_actor):
    conversation = await _conversation(test_db, performance_actor)
    client = MockAnthropicClient([
        tool_response("get_crm_summary", {}),
        text_response("Você ainda não tem clientes cadastrados."),
    ])
    agent = PulseAgent(test_db, client, get_settings())

    answer = await agent.answer(performance_actor, conversation.id, _history())
    await test_db.commit()

    assert answer == "Você ainda não tem clientes cadastrados."
    second_call = client.calls[1]["messages"]
    assert second_call[-2]["role"] == "assistant"
    tool_result = second_call[-1]["content"][0]
    assert tool_result["type"] == "tool_result"
    assert tool_result["tool_use_id"] == "toolu_get_crm_summary_test"
    assert '"total_customers": 0' in tool_result["content"]

    calls = await _tool_calls(test_db)
    assert [c.tool_name for c in calls] == ["get_crm_summary"]
    assert calls[0].error_code is None
    assert calls[0].tool_output["total_customers"] == 0


async def test_create_task_tool_assigns_actor(test_db, performance_actor):
    client = MockAnthropicClient([
        mixed_response("Vou criar a tarefa.", [
            {"name": "create_task", "input": {
                "title": "Ligar para o cliente", "due_date": "2030-05-02",
                "priority": "critica",
            }},
        ]),
        text_response("Tarefa criada."),
    ])
    agent = PulseAgent(test_db, client, get_settings())

    assert await agent.answer(performance_actor, None, _history()) == "Tarefa criada."
    task = (await test_db.execute(select(Task))).scalar_one()
    assert task.title == "Ligar para o cliente"
    assert task.responsible_user_id == performance_actor.user_id
    # unknown priority degrades to medium
    assert task.priority == "medium"


async def test_unknown_tool_is_error_result(test_db, performance_actor):
    conversation = await _conversation(test_db, performance_actor)
    client = MockAnthropicClient([
        tool_response("drop_database", {}),
        text_response("Não consigo fazer isso."),
    ])
    agent = PulseAgent(test_db, client, get_settings())

    await agent.answer(performance_actor, conversation.id, _history())
    await test_db.commit()

    assert "UNKNOWN_TOOL" in client.calls[1]["messages"][-1]["content"][0]["content"]
    calls = await _tool_calls(test_db)
    assert calls[0].error_code == "UNKNOWN_TOOL"
    assert calls[0].tool_output is None


async def test_denied_module_is_error_result(test_db, performance_actor, add_member):
    member = await add_member(performance_actor, permissions={
        "qoroCrm": True, "qoroPulse": True, "qoroTask": True, "qoroFinance": False,
    })
    conversation = await _conversation(test_db, member)
    client = MockAnthropicClient([
        tool_response("list_accounts", {}),
        text_response("Você não tem acesso ao financeiro."),
    ])
    agent = PulseAgent(test_db, client, get_settings())

    await agent.answer(member, conversation.id, _history("Qual meu saldo?"))
    await test_db.commit()

    calls = await _tool_calls(test_db)
    assert calls[0].tool_name == "list_accounts"
    assert calls[0].error_code == "PERMISSION_DENIED"


async def test_api_failure_falls_back_without_tools(test_db, performance_actor):
    client = MockAnthropicClient([_api_error(), text_response("Resposta simples.")])
    agent = PulseAgent(test_db, client, get_settings())

    answer = await agent.answer(performance_actor, None, _history())

    assert answer == "Resposta simples."
    assert "tools" not in client.calls[1]


async def test_both_failures_raise_unavailable(test_db, performance_actor):
    client = MockAnthropicClient([_api_error(), _api_error()])
    agent = PulseAgent(test_db, client, get_settings())

    with pytest.raises(AssistantUnavailableError) as exc:
        await agent.answer(performance_actor, None, _history())
    assert exc.value.http_status == 503


async def test_blank_answer_replaced(test_db, performance_actor):
    client = MockAnthropicClient([text_response("   ")])
    agent = PulseAgent(test_db, client, get_settings())
    assert await agent.answer(performance_actor, None, _history()) == EMPTY_ANSWER


async def test_dispatch_without_conversation_logs_nothing(test_db, performance_actor):
    dispatch = ToolDispatch(test_db, performance_actor)
    result = await dispatch.execute("list_suppliers", {})
    await test_db.commit()
    assert result == {"suppliers": []}
    assert "list_suppliers" in dispatch.tool_names
    assert await _tool_calls(test_db) == []


# ─── Titles ──────────────────────────────────────────────────────

async def test_generate_title(test_db):
    client = MockAnthropicClient([text_response('"Análise de Vendas".')])
    agent = PulseAgent(test_db, client, get_settings())
    title = await agent.generate_title(
        _history("Como foram as vendas do trimestre passado?"), ErrorContext(),
    )
    assert title == "Análise de Vendas"
    assert client.calls[0]["max_tokens"] == 20
    assert client.calls[0]["temperature"] == 0.2


async def test_title_echoing_user_falls_back(test_db):
    client = MockAnthropicClient([text_response("vendas do trimestre")])
    agent = PulseAgent(test_db, client, get_settings())
    title = await agent.generate_title(
        _history("Como foram as vendas do trimestre passado?"), ErrorContext(),
    )
    assert title == "Como foram as"


async def test_title_failure_falls_back(test_db):
    client = MockAnthropicClient([_api_error()])
    agent = PulseAgent(test_db, client, get_settings())
    title = await agent.generate_title(_history("Resumo financeiro"), ErrorContext())
    assert title == "Resumo financeiro"
