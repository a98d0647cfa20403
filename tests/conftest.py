"""
Shared fixtures: a throwaway chat.db with the handful of Messages tables the
reader touches, a small contacts directory and a scripted model service.
"""
import sqlite3
import threading
import time

import pytest

from message_coach.lib.contacts import Contact, ContactDirectory, ContactResolver
from message_coach.models.imessage_db import MessageStore

NS = 1_000_000_000

SCHEMA = """
CREATE TABLE chat (ROWID INTEGER PRIMARY KEY, guid TEXT, display_name TEXT, chat_identifier TEXT);
CREATE TABLE handle (ROWID INTEGER PRIMARY KEY, id TEXT);
CREATE TABLE message (
    ROWID INTEGER PRIMARY KEY, text TEXT, attributedBody BLOB,
    handle_id INTEGER, date INTEGER, is_from_me INTEGER
);
CREATE TABLE chat_message_join (chat_id INTEGER, message_id INTEGER);
"""


def typedstream_blob(text: str) -> bytes:
    """An NSAttributedString archived the way older Messages rows store it."""
    payload = text.encode("utf-8")
    if len(payload) < 0x80:
        length = bytes([len(payload)])
    else:
        length = b"\x81" + len(payload).to_bytes(2, "little")
    return (
        b"\x04\x0bstreamtyped\x81\xe8\x03\x84\x01@\x84\x84\x84"
        b"\x12NSAttributedString\x00\x84\x84\x08NSObject\x00\x85\x92"
        b"\x84\x84\x84\x08NSString\x01\x94\x84\x01+" + length + payload +
        b"\x86\x84\x02iI\x01\x05\x92\x84\x84\x84\x0cNSDictionary\x00\x94\x84\x01i\x01"
        b"\x92\x84\x96\x96\x1d__kIMMessagePartAttributeName\x86\x92\x84\x84\x84\x08NSNumber"
        b"\x00\x84\x84\x07NSValue\x00\x94\x84\x01*\x84\x99\x99\x00\x86\x86\x86"
    )


@pytest.fixture
def directory():
    return ContactDirectory([
        Contact("Jane", "Doe", phones=["+1 (555) 123-4567"], emails=["jane@example.com"]),
        Contact("Cher", "", phones=["555-0100"]),
        Contact("Bob", "Stone", phones=["555-9876"]),
    ])


@pytest.fixture
def resolver(directory):
    return ContactResolver(directory)


@pytest.fixture
def chat_db(tmp_path):
    """
    Chats, newest activity first: 2 (Jane, unnamed), 1 (Book Club),
    3 (unknown number), 4 (no name, no identifier), 5 (empty identifier).
    """
    path = tmp_path / "chat.db"
    conn = sqlite3.connect(path)
    conn.executescript(SCHEMA)
    conn.executemany("INSERT INTO chat VALUES (?,?,?,?)", [
        (1, "g1", "Book Club", "chat123456"),
        (2, "g2", None, "+15551234567"),
        (3, "g3", "", "5559990000"),
        (4, "g4", "", None),
        (5, "g5", None, ""),
    ])
    conn.executemany("INSERT INTO handle VALUES (?,?)", [
        (1, "+15551234567"),
        (2, "+15559990000"),
        (3, "bob@example.com"),
    ])
    rows = [
        # (rowid, chat, text, blob, handle, seconds since 2001, from me)
        (1, 1, "Who's bringing snacks?", None, 3, 1000, 0),
        (2, 1, "I can", None, 0, 1100, 1),
        (3, 2, "Hey!", None, 1, 5000, 0),
        (4, 2, "Hi Jane", None, 1, 5100, 1),  # outgoing rows keep the chat handle
        (5, 2, None, typedstream_blob("Dinner at 7?"), 1, 5200, 0),
        (6, 2, "Liked “Dinner at 7?”", None, 0, 5300, 1),
        (7, 2, "Sounds good", None, 1, 5400, 0),
        (8, 3, "Your code is 1234", None, 2, 900, 0),
        (9, 4, "ghost", None, 2, 800, 0),
        (10, 5, "ghost 2", None, 2, 700, 0),
        (11, 2, None, None, 1, 5450, 0),
    ]
    for rowid, chat, text, blob, handle, secs, me in rows:
        conn.execute("INSERT INTO message VALUES (?,?,?,?,?,?)",
                     (rowid, text, blob, handle, secs * NS, me))
        conn.execute("INSERT INTO chat_message_join VALUES (?,?)", (chat, rowid))
    conn.commit()
    conn.close()
    return path


@pytest.fixture
def store(chat_db, resolver):
    return MessageStore(resolver, db_path=str(chat_db))


class FakeModelService:
    """Answers by prompt kind and records every prompt it was given."""

    def __init__(self, available=True, delay=0.0, replies=None):
        self.available = available
        self.delay = delay
        self.prompts = []
        self.replies = replies or {}
        self._lock = threading.Lock()

    def check_model_availability(self, model_name=None):
        return self.available

    def execute_prompt(self, prompt):
        with self._lock:
            self.prompts.append(prompt)
        if self.delay:
            time.sleep(self.delay)
        for marker, reply in self.replies.items():
            if marker in prompt:
                return reply
        return "ok"


@pytest.fixture
def fake_service():
    return FakeModelService(replies={
        "high level interpretation": "They want to have dinner.",
        "write a thoughtful, relevant reply": "Suggestion:\n\"Sounds great, see you at 7!\"",
        "expert editor": "\"See you at 7!\"\nShorter and warmer.",
        "communication coach": "They seem keen.",
    })
