from __future__ import annotations
import re
from dataclasses import dataclass, field
from typing import List, Optional, Union

MAX_HEADER_LEN = 80

_QUOTE_CHARS    = "\"“”"
_QUOTED_RUN_RE  = re.compile(r'["“”][^"“”]+["“”]')

@dataclass(frozen=True)
class TextSegment:
    text: str
    kind: str = field(default="text", init=False)

@dataclass(frozen=True)
class QuoteSegment:
    text: str
    kind: str = field(default="quote", init=False)

Segment = Union[TextSegment, QuoteSegment]

def bold_header_lines(text: str) -> str:
    """Make header-looking lines ("Explanation:", "## Tips") bold Markdown."""
    out = []
    for line in text.split("\n"):
        t = line.strip()
        if t.endswith(":") and len(t) <= MAX_HEADER_LEN:
            out.append(f"**{t}**")
        elif t.startswith("#"):
            out.append(f"**{t.strip('# ')}**")
        else:
            out.append(line)
    return "\n".join(out)

def quoted_segments(text: str) -> List[Segment]:
    segments: List[Segment] = []
    pos = 0
    for m in _QUOTED_RUN_RE.finditer(text):
        before = text[pos:m.start()].strip()
        if before:
            segments.append(TextSegment(before))
        segments.append(QuoteSegment(m.group(0).strip(_QUOTE_CHARS).strip()))
        pos = m.end()
    rest = text[pos:].strip()
    if rest:
        segments.append(TextSegment(rest))
    return segments

def first_quoted_segment(text: str) -> Optional[str]:
    """The first quoted run, e.g. the copy-ready reply inside a suggestion."""
    m = _QUOTED_RUN_RE.search(text)
    return m.group(0).strip(_QUOTE_CHARS).strip() if m else None

def segments_to_json(segments: List[Segment]) -> List[dict]:
    return [{"kind": s.kind, "text": s.text} for s in segments]
