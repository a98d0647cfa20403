from __future__ import annotations
import datetime
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional
from ..lib.time_utils import dt_to_iso

@dataclass(frozen=True)
class Conversation:
    id: int              # chat.ROWID
    display_name: str

@dataclass(frozen=True)
class Message:
    id: int
    text: str
    sender: str          # raw handle id, "" when sent by me
    timestamp: Optional[datetime.datetime]
    is_from_me: bool

    def to_json(self) -> Dict[str, Any]:
        d = asdict(self)
        d["timestamp"] = dt_to_iso(self.timestamp)
        return d

@dataclass(frozen=True)
class Interaction:
    prompt_label: str
    response_text: str
