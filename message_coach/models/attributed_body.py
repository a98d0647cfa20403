"""
Recovering message text from `message.attributedBody`.

Newer Messages rows leave `text` NULL and keep the body as an archived
NSAttributedString. Depending on the OS that wrote the row the archive is
either a legacy typedstream (NSArchiver) or a keyed archive (NSKeyedArchiver,
binary plist). Each decoder below takes the raw blob and returns the plain
string or None; decode_attributed_body tries them in order.
"""
from __future__ import annotations
import plistlib
from typing import Any, Callable, List, Optional
from ..lib.log import debug

Decoder = Callable[[bytes], Optional[str]]

TYPEDSTREAM_HEADER = b"\x04\x0bstreamtyped"
_ATTRIBUTED_CLASSES = {"NSAttributedString", "NSMutableAttributedString"}

# -------- legacy typedstream --------
def _read_typedstream_length(data: bytes, pos: int) -> Optional[tuple[int, int]]:
    if pos >= len(data): return None
    tag = data[pos]
    if tag == 0x81:
        if pos + 3 > len(data): return None
        return int.from_bytes(data[pos+1:pos+3], "little"), pos + 3
    if tag == 0x82:
        if pos + 5 > len(data): return None
        return int.from_bytes(data[pos+1:pos+5], "little"), pos + 5
    if tag < 0x80:
        return tag, pos + 1
    return None

def decode_typedstream(data: bytes) -> Optional[str]:
    if not data.startswith(TYPEDSTREAM_HEADER): return None
    if b"NSAttributedString" not in data: return None
    cls = data.find(b"NSString")
    if cls < 0: return None
    # NSString's instance data is introduced by the C-string type tag `+`
    marker = data.find(b"\x84\x01+", cls, cls + 32)
    if marker < 0: return None
    read = _read_typedstream_length(data, marker + 3)
    if read is None: return None
    length, start = read
    payload = data[start:start + length]
    if len(payload) != length: return None
    try:
        return payload.decode("utf-8")
    except UnicodeDecodeError:
        return None

# -------- keyed archive --------
def _resolve(objects: List[Any], value: Any, depth: int = 0) -> Any:
    while isinstance(value, plistlib.UID):
        if depth > len(objects) or not 0 <= value.data < len(objects):
            return None
        value = objects[value.data]
        depth += 1
    return value

def _class_names(objects: List[Any], node: dict) -> set:
    cls = _resolve(objects, node.get("$class"))
    if not isinstance(cls, dict): return set()
    names = set(cls.get("$classes") or [])
    if cls.get("$classname"): names.add(cls["$classname"])
    return names

def decode_keyed_archive(data: bytes) -> Optional[str]:
    try:
        archive = plistlib.loads(data)
    except (plistlib.InvalidFileException, ValueError, TypeError, OverflowError):
        return None
    if not isinstance(archive, dict) or archive.get("$archiver") != "NSKeyedArchiver":
        return None
    objects = archive.get("$objects")
    top = archive.get("$top")
    if not isinstance(objects, list) or not isinstance(top, dict):
        return None
    root = _resolve(objects, top.get("root"))
    if not isinstance(root, dict) or not (_class_names(objects, root) & _ATTRIBUTED_CLASSES):
        return None
    string = _resolve(objects, root.get("NS.string"))
    if isinstance(string, dict):  # NSMutableString wraps its contents once more
        string = _resolve(objects, string.get("NS.string"))
    if isinstance(string, bytes):
        try: string = string.decode("utf-8")
        except UnicodeDecodeError: return None
    return string if isinstance(string, str) else None

# -------- raw bytes --------
def decode_utf8(data: bytes) -> Optional[str]:
    try:
        s = data.decode("utf-8")
    except UnicodeDecodeError:
        return None
    return s if s.strip() else None

DECODERS: List[Decoder] = [decode_typedstream, decode_keyed_archive, decode_utf8]

def decode_attributed_body(blob: Any, decoders: Optional[List[Decoder]] = None) -> Optional[str]:
    if blob is None: return None
    if isinstance(blob, memoryview): blob = blob.tobytes()
    elif not isinstance(blob, (bytes, bytearray)): return None
    data = bytes(blob)
    if not data: return None
    for decoder in (decoders if decoders is not None else DECODERS):
        try:
            text = decoder(data)
        except Exception as e:  # a failing strategy falls through to the next
            debug(f"{decoder.__name__} raised {type(e).__name__}: {e}")
            continue
        if text is not None:
            return text
    return None
