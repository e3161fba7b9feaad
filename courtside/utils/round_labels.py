"""
Knockout round labels.

A label is computed once from the round's distance to the final and stored as
its short code ("FI", "3RD", "SF", "QF", "R16", "R32", ...). Consumers parse the
code back into a RoundLabel instead of comparing strings.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class RoundKind(str, Enum):
    final = "FI"
    third_place = "3RD"
    semifinal = "SF"
    quarterfinal = "QF"
    round_of = "R"


_FINALS_TIER = (RoundKind.final, RoundKind.third_place, RoundKind.semifinal)


@dataclass(frozen=True)
class RoundLabel:
    kind: RoundKind
    size: Optional[int] = None  # entrants in the round; only for round_of

    @property
    def code(self) -> str:
        if self.kind == RoundKind.round_of:
            return f"R{self.size}"
        return self.kind.value

    @property
    def is_finals_tier(self) -> bool:
        """Final, third-place and semifinal rounds share the main court."""
        return self.kind in _FINALS_TIER

    @classmethod
    def for_round(cls, total_rounds: int, round_number: int) -> "RoundLabel":
        """Label for ``round_number`` (1-based) of a bracket with ``total_rounds`` rounds."""
        if round_number < 1 or round_number > total_rounds:
            raise ValueError(f"round_number must be in 1..{total_rounds}, got {round_number}")
        distance = total_rounds - round_number
        if distance == 0:
            return cls(RoundKind.final)
        if distance == 1:
            return cls(RoundKind.semifinal)
        if distance == 2:
            return cls(RoundKind.quarterfinal)
        return cls(RoundKind.round_of, 2 ** (distance + 1))

    @classmethod
    def third_place(cls) -> "RoundLabel":
        return cls(RoundKind.third_place)

    @classmethod
    def parse(cls, code: Optional[str]) -> Optional["RoundLabel"]:
        if not code:
            return None
        for kind in (RoundKind.final, RoundKind.third_place, RoundKind.semifinal, RoundKind.quarterfinal):
            if code == kind.value:
                return cls(kind)
        if code.startswith("R") and code[1:].isdigit():
            return cls(RoundKind.round_of, int(code[1:]))
        raise ValueError(f"Unknown round label: {code!r}")
