from __future__ import annotations
import re, pathlib
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple
from .log import debug

_PHONE_URI_PREFIX_RE = re.compile(r"^(?:tel:|sms:)", re.I)
_NON_DIGIT_RE        = re.compile(r"\D")

def digits_only(s: Optional[str]) -> str:
    if not s: return ""
    return _NON_DIGIT_RE.sub("", s)

def clean_phone_to_digits(s: Optional[str]) -> str:
    """Strip tel:/sms: and every non-digit character."""
    if not s: return ""
    return digits_only(_PHONE_URI_PREFIX_RE.sub("", s.strip()))

def format_phone_number(phone: str) -> str:
    d = digits_only(phone)
    if len(d) == 11 and d.startswith("1"):
        return f"+1 ({d[1:4]}) {d[4:7]}-{d[7:]}"
    if len(d) == 10:
        return f"({d[:3]}) {d[3:6]}-{d[6:]}"
    return phone

# -------- Identity directory --------
@dataclass
class Contact:
    given_name: str
    family_name: str = ""
    phones: List[str] = field(default_factory=list)
    emails: List[str] = field(default_factory=list)

    @property
    def display_name(self) -> str:
        full = f"{self.given_name} {self.family_name}".strip()
        return full or self.given_name

    def phone_keys(self) -> set:
        """Forms a direct phone lookup accepts: stored value, digits, +digits."""
        keys = set()
        for p in self.phones:
            d = clean_phone_to_digits(p)
            keys.add(p.strip())
            if d:
                keys.add(d)
                keys.add("+" + d)
        return keys

class ContactDirectory:
    """Read-only list of contacts, kept in cache-file order."""

    def __init__(self, contacts: Optional[List[Contact]] = None):
        self.contacts: List[Contact] = list(contacts or [])
        self._phone_index: Dict[str, Contact] = {}
        self._email_index: Dict[str, Contact] = {}
        for c in self.contacts:
            for k in c.phone_keys():
                self._phone_index.setdefault(k, c)
            for e in c.emails:
                self._email_index.setdefault(e.strip().lower(), c)

    def __len__(self) -> int:
        return len(self.contacts)

    def match_phone(self, value: str) -> Optional[Contact]:
        return self._phone_index.get(value)

    def match_email(self, value: str) -> Optional[Contact]:
        return self._email_index.get(value.strip().lower())

def _parse_cache_line(line: str) -> Optional[Tuple[str, str, str, str]]:
    parts = [p.strip() for p in line.split("||")]
    if len(parts) == 4:
        given, family, kind, value = parts
    elif len(parts) == 3:
        given, kind, value = parts
        family = ""
    else:
        return None
    if not (given or family) or not value: return None
    return given, family, kind, value

def load_contact_directory(path: str) -> ContactDirectory:
    """
    Build a ContactDirectory from the contacts cache written by
    contacts_cache_dump. Lines look like `Given||Family||phone||+1 555...`;
    the older `Name||phone||...` layout is read too. A missing cache yields
    an empty directory (contacts are optional).
    """
    p = pathlib.Path(path).expanduser()
    if not p.exists():
        debug(f"contacts cache not found: {p}")
        return ContactDirectory()
    by_name: Dict[Tuple[str,str], Contact] = {}
    try:
        with p.open("r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line or "||" not in line: continue
                parsed = _parse_cache_line(line)
                if parsed is None: continue
                given, family, kind, value = parsed
                c = by_name.setdefault((given, family), Contact(given, family))
                if kind == "phone":
                    c.phones.append(value)
                elif kind == "email":
                    c.emails.append(value)
    except OSError as e:
        debug(f"contacts cache unreadable: {e}")
        return ContactDirectory()
    return ContactDirectory(list(by_name.values()))

# -------- Resolution --------
def _as_given(identifier: str, digits: str) -> str:
    return identifier

def _digits(identifier: str, digits: str) -> str:
    return digits

def _plus_digits(identifier: str, digits: str) -> str:
    return "+" + digits

def _us_country_code(identifier: str, digits: str) -> str:
    return "+1" + (digits[:-1] if digits.endswith("1") else digits)

# Order matters: the first variant that hits decides which contact wins.
PHONE_VARIANTS: List[Callable[[str, str], str]] = [
    _as_given,
    _digits,
    _plus_digits,
    _us_country_code,
]

def phone_variants(identifier: str) -> List[str]:
    d = clean_phone_to_digits(identifier)
    if not d: return []
    return [v(identifier, d) for v in PHONE_VARIANTS]

class ContactResolver:
    def __init__(self, directory: ContactDirectory):
        self.directory = directory

    def resolve(self, handle: Optional[str]) -> Optional[str]:
        if not handle: return None
        h = handle.strip()
        if "@" in h:
            c = self.directory.match_email(h)
            if c and c.display_name:
                return c.display_name
        target = clean_phone_to_digits(h)
        if not target:
            debug(f"no digits in handle {h!r}")
            return None

        for variant in phone_variants(h):
            c = self.directory.match_phone(variant)
            if c is not None:
                debug(f"handle {h!r} matched variant {variant!r}")
                return c.display_name or None

        # partial / ambiguous numbers
        for c in self.directory.contacts:
            for ph in c.phones:
                cd = clean_phone_to_digits(ph)
                if cd and (target in cd or cd in target):
                    debug(f"handle {h!r} matched by scan: {c.display_name!r}")
                    return c.display_name or None
        return None

    def display_name(self, handle: str) -> str:
        return self.resolve(handle) or format_phone_number(handle)
