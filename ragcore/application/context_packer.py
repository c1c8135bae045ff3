"""
Name: Context Packer (token budget)

Greedy en orden de ranking: acumula token_count y se detiene en el primer
chunk que excedería max_tokens. Nunca reordena ni desplaza un chunk mejor
rankeado por uno peor. `pack` acepta un presupuesto puntual que pisa el
configurado sólo para esa llamada.
"""

from __future__ import annotations

from typing import Optional, Sequence

from ..domain.entities import ScoredChunk


def _check_budget(max_tokens: int) -> int:
    if max_tokens < 0:
        raise ValueError("max_tokens must be >= 0")
    return max_tokens


class ContextPacker:
    def __init__(self, max_tokens: int) -> None:
        self.max_tokens = _check_budget(max_tokens)

    def pack(
        self,
        ranked: Sequence[ScoredChunk],
        max_tokens: Optional[int] = None,
    ) -> list[ScoredChunk]:
        budget = self.max_tokens if max_tokens is None else _check_budget(max_tokens)
        packed: list[ScoredChunk] = []
        used = 0
        for item in ranked:
            tokens = max(0, item.chunk.token_count)
            if used + tokens > budget:
                break
            packed.append(item)
            used += tokens
        return packed
