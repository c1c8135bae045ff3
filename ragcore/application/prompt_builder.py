"""
Name: Prompt Builder (grounding / conversational / follow-ups)

Qué es
------
Arma los textos que el pipeline envía al proveedor de generación:
  - Prompt de grounding: fuentes numeradas + reglas context-only.
  - Query conversacional: últimos N turnos + pregunta actual (se embeddea
    tal cual; no hay un paso separado de embedding del historial).
  - Sugerencias de follow-up a partir de los títulos de sección.

Constraints:
  - El contenido de los chunks es DATO, no instrucciones: va entre
    etiquetas de fuente y nunca se interpola dentro de las reglas.
"""

from __future__ import annotations

from typing import Sequence

from ..domain.entities import ConversationTurn, ScoredChunk

MISSING_INFORMATION_ANSWER = "This information is not available in the sources."

_GROUNDING_RULES = (
    "Rules:",
    "1. Use only the information in the sources below.",
    "2. Do not add facts, names or numbers that do not appear in the sources.",
    "3. Answer clearly and concisely in the language of the question.",
    f'4. If the answer is not in the sources, reply exactly: "{MISSING_INFORMATION_ANSWER}"',
)

_GENERIC_FOLLOWUPS = (
    "Can you give more detail on this topic?",
    "Are there related examples in the documents?",
    "What are the practical applications of this topic?",
)

MAX_FOLLOWUPS = 3


def source_label(index: int, item: ScoredChunk) -> str:
    """'Source i (document <id>, page n, section s):' (page/section opcionales)."""
    chunk = item.chunk
    parts = [f"document {chunk.document_id}"]
    if chunk.page_number is not None:
        parts.append(f"page {chunk.page_number}")
    if chunk.section_title:
        parts.append(f"section {chunk.section_title}")
    return f"Source {index} ({', '.join(parts)}):"


def build_grounded_prompt(question: str, packed: Sequence[ScoredChunk]) -> str:
    lines = [
        "You are an assistant that answers questions using only the document "
        "excerpts provided below.",
        "",
        *_GROUNDING_RULES,
        "",
        "Relevant document excerpts:",
        "",
    ]
    for i, item in enumerate(packed, start=1):
        lines.append(source_label(i, item))
        lines.append(item.chunk.content.strip())
        lines.append("")
    lines.append(f"Question: {question.strip()}")
    lines.append("")
    lines.append("Answer:")
    return "\n".join(lines)


def build_conversational_query(
    question: str, history: Sequence[ConversationTurn], *, max_turns: int
) -> str:
    """Antepone los últimos `max_turns` turnos; sin historial devuelve la pregunta."""
    recent = list(history)[-max_turns:] if max_turns > 0 else []
    if not recent:
        return question
    turns = "\n".join(f"{turn.role}: {turn.content.strip()}" for turn in recent)
    return (
        "Previous conversation context:\n"
        f"{turns}\n\n"
        f"Current question: {question}"
    )


def suggest_followups(sources: Sequence[ScoredChunk]) -> list[str]:
    """Hasta 3 preguntas: primero por título de sección, luego genéricas."""
    suggestions: list[str] = []
    seen: set[str] = set()
    for item in sources:
        title = (item.chunk.section_title or "").strip()
        if not title or title.lower() in seen:
            continue
        seen.add(title.lower())
        suggestions.append(f"Can you tell me more about {title}?")
        if len(suggestions) == MAX_FOLLOWUPS:
            return suggestions

    for generic in _GENERIC_FOLLOWUPS:
        if len(suggestions) == MAX_FOLLOWUPS:
            break
        suggestions.append(generic)
    return suggestions
