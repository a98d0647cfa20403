from __future__ import annotations
import enum
from typing import Dict, List, Sequence, Union
from ..models.records import Message

class ContextLevel(enum.Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    MAXIMUM = "Maximum"

    @property
    def message_limit(self) -> int:
        return {"Low": 4, "Medium": 10, "Maximum": 20}[self.value]

    @classmethod
    def parse(cls, value: str) -> "ContextLevel":
        for level in cls:
            if value.strip().lower() in (level.value.lower(), level.name.lower()):
                return level
        raise ValueError(f"unknown context level: {value!r}")

SELF_LABEL = "Me"

REACTION_VERBS = (
    "liked", "loved", "disliked", "laughed at", "emphasized", "questioned",
    "le gustó", "les gustó", "le encantó", "le disgustó", "se rió de", "enfatizó", "preguntó",
)

def is_reaction(text: str) -> bool:
    """Tapback lines look like `Liked "Sure!"`."""
    lower = (text or "").strip().lower()
    return any(lower.startswith(verb + " ") for verb in REACTION_VERBS)

class AliasTable:
    """
    Pseudonyms for the other people in one conversation session.
    Numbers are handed out in first-seen order; call reset() when the
    selected conversation changes.
    """
    def __init__(self):
        self._aliases: Dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._aliases)

    def __contains__(self, sender: str) -> bool:
        return sender in self._aliases

    def alias_for(self, sender: str) -> str:
        if sender not in self._aliases:
            self._aliases[sender] = f"Other person {len(self._aliases) + 1}"
        return self._aliases[sender]

    def reset(self) -> None:
        self._aliases.clear()

    def as_dict(self) -> Dict[str, str]:
        return dict(self._aliases)

def build_transcript(messages: Sequence[Message],
                     context: Union[ContextLevel, int],
                     aliases: AliasTable) -> str:
    limit = context.message_limit if isinstance(context, ContextLevel) else int(context)
    kept = [m for m in messages if not is_reaction(m.text)]
    kept = kept[-limit:] if limit > 0 else []

    lines: List[str] = []
    for m in kept:
        speaker = SELF_LABEL if m.is_from_me else aliases.alias_for(m.sender)
        lines.append(f"{speaker}: {m.text}")
    return "\n".join(lines)
