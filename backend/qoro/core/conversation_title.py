"""Conversation Titles — heuristics around AI-suggested conversation titles.

Invariants:
    - A provisional title is the first 30 chars of the opening user message
    - A suggestion that merely restates the first message is discarded
    - Fallback chain: cleaned AI title -> first 3 words of first user message -> "Nova conversa"
"""

import re

FALLBACK_TITLE = "Nova conversa"
PROVISIONAL_TITLE_LENGTH = 30
TITLE_CONTEXT_MESSAGES = 5

_EDGE_PUNCTUATION = re.compile(r"^[\"'“‘]+|[\"'”’.,!?]+$")


def provisional_title(first_message: str) -> str:
    return first_message.strip()[:PROVISIONAL_TITLE_LENGTH] or FALLBACK_TITLE


def clean_title(raw: str | None) -> str:
    """Strip quotes and trailing punctuation the model tends to add."""
    return _EDGE_PUNCTUATION.sub("", (raw or "").strip()).strip()


def first_user_content(messages: list[dict]) -> str:
    for message in messages:
        if message.get("role") == "user":
            return str(message.get("content") or "")
    return ""


def is_derived_from_first_message(suggested: str | None, first_user: str | None) -> bool:
    """True when a suggestion adds nothing over the user's own words."""
    a = (suggested or "").strip().lower()
    b = (first_user or "").strip().lower()
    if not a or not b:
        return True
    return a == b or a in b or b in a


def fallback_title(messages: list[dict]) -> str:
    words = first_user_content(messages).split()[:3]
    return " ".join(words) if words else FALLBACK_TITLE


def build_title_prompt(messages: list[dict]) -> str:
    """Prompt asking for a 2-4 word title over the opening exchanges."""
    context = "\n".join(
        f"{'Usuário' if m.get('role') == 'user' else 'Assistente'}: {m.get('content')}"
        for m in messages[:TITLE_CONTEXT_MESSAGES]
    )
    return (
        "Analise o contexto das mensagens abaixo e crie um título conciso com "
        "2 a 4 palavras que capture o tema central da conversa.\n"
        "Retorne apenas o título, sem aspas, pontuação ou formatação adicional.\n\n"
        f"Mensagens:\n---\n{context}\n---\nTítulo:"
    )
