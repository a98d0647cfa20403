from __future__ import annotations
import os, sqlite3
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional
from ..lib.config import (
    DEFAULT_DB_PATH,
    CONVERSATION_POOL,
    RECENT_CHATS,
    MESSAGES_PER_CHAT,
)
from ..lib.time_utils import apple_time_to_dt
from ..lib.contacts import ContactResolver, format_phone_number
from ..lib.log import debug, warn
from .attributed_body import decode_attributed_body
from .records import Conversation, Message

UNKNOWN_CHAT = "Unknown Chat"

# -------- DB open --------
def open_db_ro(path: str) -> sqlite3.Connection:
    return sqlite3.connect(f"file:{path}?mode=ro", uri=True)

# -------- Basic models & queries --------
@dataclass
class ChatRow:
    chat_id: int
    display_name: Optional[str]
    chat_identifier: Optional[str]

def recent_chat_ids(conn: sqlite3.Connection, limit: int) -> List[int]:
    q = """
    SELECT cmj.chat_id
    FROM message m
    JOIN chat_message_join cmj ON cmj.message_id = m.ROWID
    GROUP BY cmj.chat_id
    ORDER BY MAX(m.date) DESC
    LIMIT ?
    """
    cur = conn.cursor()
    cur.execute(q, (limit,))
    return [int(r[0]) for r in cur.fetchall()]

def chat_details(conn: sqlite3.Connection, chat_id: int) -> Optional[ChatRow]:
    cur = conn.cursor()
    cur.execute("SELECT ROWID, display_name, chat_identifier FROM chat WHERE ROWID = ? LIMIT 1", (chat_id,))
    row = cur.fetchone()
    return ChatRow(*row) if row else None

def display_name_for_chat(chat: ChatRow, resolver: ContactResolver) -> str:
    if chat.display_name:
        return chat.display_name
    if chat.chat_identifier is not None:
        name = resolver.resolve(chat.chat_identifier)
        if name:
            debug(f"mapped {chat.chat_identifier} -> {name}")
            return name
        return format_phone_number(chat.chat_identifier)
    return UNKNOWN_CHAT

def collect_conversations(chat_ids: Iterable[int],
                          details: Callable[[int], Optional[ChatRow]],
                          resolver: ContactResolver,
                          max_conversations: int = RECENT_CHATS) -> List[Conversation]:
    """Walk the pooled chat ids in recency order, keeping named, unique chats."""
    out: List[Conversation] = []
    seen = set()
    for chat_id in chat_ids:
        if len(out) >= max_conversations:
            break
        chat = details(chat_id)
        if chat is None:
            debug(f"no chat row for chat_id={chat_id}")
            continue
        name = display_name_for_chat(chat, resolver)
        if not name.strip() or name == UNKNOWN_CHAT:
            debug(f"skipping chat_id={chat_id}: no usable name")
            continue
        if chat.chat_id in seen:
            debug(f"skipping duplicate chat_id={chat_id}")
            continue
        seen.add(chat.chat_id)
        out.append(Conversation(id=int(chat.chat_id), display_name=name))
    return out

def recent_messages_for_chat(conn: sqlite3.Connection, chat_id: int, limit: int) -> List[Message]:
    q = """
    SELECT
      m.ROWID,
      m.text,
      m.attributedBody,
      h.id,
      m.date,
      m.is_from_me
    FROM message m
    LEFT JOIN handle h ON h.ROWID = m.handle_id
    JOIN chat_message_join cmj ON cmj.message_id = m.ROWID
    WHERE cmj.chat_id = ?
    ORDER BY m.date DESC
    LIMIT ?
    """
    cur = conn.cursor()
    cur.execute(q, (chat_id, limit))
    out: List[Message] = []
    for (rowid, text, attrib, sender, date_raw, is_from_me) in cur.fetchall():
        msg_text = text or ""
        if not msg_text and attrib:
            decoded = decode_attributed_body(attrib)
            if decoded is not None:
                msg_text = decoded
            else:
                debug(f"could not decode attributedBody for message {rowid}")
        out.append(Message(
            id=int(rowid),
            text=msg_text,
            sender="" if is_from_me else (sender or ""),
            timestamp=apple_time_to_dt(date_raw),
            is_from_me=bool(is_from_me),
        ))
    return list(reversed(out))  # oldest→newest

# -------- Store facade --------
class MessageStore:
    """
    Read-only access to the Messages database. Every read degrades to an
    empty list when the database can't be opened or queried (usually missing
    Full Disk Access); is_readable() tells the caller which case it is.
    """
    def __init__(self, resolver: ContactResolver, db_path: str = DEFAULT_DB_PATH,
                 pool_size: int = CONVERSATION_POOL):
        self.resolver = resolver
        self.db_path = db_path
        self.pool_size = pool_size

    def is_readable(self) -> bool:
        return os.access(self.db_path, os.R_OK)

    def _connect(self) -> Optional[sqlite3.Connection]:
        if not os.path.exists(self.db_path):
            warn(f"Messages DB not found: {self.db_path}")
            return None
        try:
            return open_db_ro(self.db_path)
        except sqlite3.Error as e:
            warn(f"cannot open {self.db_path}: {e}")
            return None

    def list_recent_conversations(self, max_conversations: int = RECENT_CHATS) -> List[Conversation]:
        conn = self._connect()
        if conn is None: return []
        try:
            ids = recent_chat_ids(conn, self.pool_size)
            debug(f"recent chat ids: {ids}")
            return collect_conversations(ids, lambda cid: chat_details(conn, cid),
                                         self.resolver, max_conversations)
        except sqlite3.Error as e:
            warn(f"listing conversations failed: {e}")
            return []
        finally:
            conn.close()

    def fetch_messages(self, chat_id: int, limit: int = MESSAGES_PER_CHAT) -> List[Message]:
        conn = self._connect()
        if conn is None: return []
        try:
            return recent_messages_for_chat(conn, chat_id, limit)
        except sqlite3.Error as e:
            warn(f"fetching messages for chat {chat_id} failed: {e}")
            return []
        finally:
            conn.close()
