"""Conversation Titles — tests for provisional titles, cleanup and fallbacks."""

from qoro.core.conversation_title import (
    FALLBACK_TITLE, build_title_prompt, clean_title, fallback_title,
    first_user_content, is_derived_from_first_message, provisional_title,
)

MESSAGES = [
    {"role": "user", "content": "Como está o faturamento deste mês?"},
    {"role": "assistant", "content": "O faturamento está em R$ 12.000."},
]


def test_provisional_title_truncates_to_30_chars():
    assert provisional_title("x" * 50) == "x" * 30
    assert provisional_title("   ") == FALLBACK_TITLE


def test_clean_title_strips_quotes_and_punctuation():
    assert clean_title('"Faturamento mensal."') == "Faturamento mensal"
    assert clean_title("“Resumo financeiro”") == "Resumo financeiro"
    assert clean_title(None) == ""


def test_first_user_content():
    assert first_user_content(MESSAGES) == "Como está o faturamento deste mês?"
    assert first_user_content([]) == ""


def test_derived_titles_detected():
    first = "Como está o faturamento deste mês?"
    assert is_derived_from_first_message("como está o faturamento", first)
    assert is_derived_from_first_message(first, first)
    assert is_derived_from_first_message("", first)
    assert not is_derived_from_first_message("Faturamento mensal", first)


def test_fallback_title_uses_three_words():
    assert fallback_title(MESSAGES) == "Como está o"
    assert fallback_title([]) == FALLBACK_TITLE


def test_title_prompt_labels_speakers():
    prompt = build_title_prompt(MESSAGES)
    assert "Usuário: Como está o faturamento" in prompt
    assert "Assistente: O faturamento" in prompt
    assert prompt.endswith("Título:")
