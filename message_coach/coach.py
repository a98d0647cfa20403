#!/usr/bin/env python3
from __future__ import annotations
import json, asyncio, argparse
from typing import Any, Dict, Optional

from .lib.config import (
    DEFAULT_DB_PATH,
    DEFAULT_CONTACTS,
    RECENT_CHATS,
    MESSAGES_PER_CHAT,
    MODEL_BACKEND,
    MODEL_NAME,
)
from .lib.contacts import ContactResolver, load_contact_directory
from .lib.prompts import Language, Mode
from .lib.text_utils import quoted_segments, segments_to_json
from .lib.transcript import ContextLevel
from .models.imessage_db import MessageStore
from .models.ollama import make_model_service
from .models.records import Conversation
from .session import CoachSession

def build_session(db_path: str = DEFAULT_DB_PATH,
                  contacts_path: str = DEFAULT_CONTACTS,
                  backend: str = MODEL_BACKEND,
                  model: str = MODEL_NAME,
                  **session_kwargs) -> CoachSession:
    resolver = ContactResolver(load_contact_directory(contacts_path))
    store = MessageStore(resolver, db_path=db_path)
    return CoachSession(store, make_model_service(backend, model), **session_kwargs)

def session_snapshot(session: CoachSession, include_prompt: bool = False) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "conversation": None if session.selected is None else {
            "id": session.selected.id, "display_name": session.selected.display_name,
        },
        "mode": session.mode.value,
        "language": session.language.value,
        "context_level": session.context_level.value,
        "interactions": [
            {
                "prompt": i.prompt_label,
                "response": i.response_text,
                "segments": segments_to_json(quoted_segments(i.response_text)),
            }
            for i in session.interactions
        ],
    }
    if include_prompt:
        out["last_prompt"] = session.last_prompt
    return out

# ============ CLI ============
def main(argv: Optional[list] = None) -> int:
    ap = argparse.ArgumentParser(
        description="Read recent Messages conversations and get local-LLM coaching on them."
    )
    ap.add_argument("--db", default=DEFAULT_DB_PATH, help="Path to chat.db")
    ap.add_argument("--contacts", default=DEFAULT_CONTACTS, help="Path to contacts cache file")
    ap.add_argument("--backend", default=MODEL_BACKEND, choices=["http", "cli", "openai"],
                    help="How to reach the model (default: %(default)s)")
    ap.add_argument("--model", default=MODEL_NAME, help="Model name (default: %(default)s)")
    ap.add_argument("--pretty", action="store_true", help="Pretty-print JSON")

    ap.add_argument("--list", action="store_true", help="List recent conversations")
    ap.add_argument("--chats", type=int, default=RECENT_CHATS, help="How many conversations to list")
    ap.add_argument("--chat", type=int, help="chat ROWID to work on")
    ap.add_argument("--limit", type=int, default=MESSAGES_PER_CHAT, help="Messages to read from the chat")
    ap.add_argument("--context", default="medium", help="Context level: low, medium or maximum")
    ap.add_argument("--lang", default="english", help="Language for prompts: english or spanish")
    ap.add_argument("--show-prompt", action="store_true", help="Include the last prompt in the output")

    action = ap.add_mutually_exclusive_group(required=False)
    action.add_argument("--messages", action="store_true", help="Dump the chat's messages")
    action.add_argument("--transcript", action="store_true", help="Print the anonymized transcript")
    action.add_argument("--interpret", nargs="?", const="", metavar="QUESTION",
                        help="Interpret the chat, or answer QUESTION about it")
    action.add_argument("--draft", nargs="?", const="", metavar="TEXT",
                        help="Suggest a reply, or improve TEXT")

    args = ap.parse_args(argv)
    try:
        context = ContextLevel.parse(args.context)
        language = Language.parse(args.lang)
    except ValueError as e:
        ap.error(str(e))
    indent = 2 if args.pretty else None

    session = build_session(args.db, args.contacts, args.backend, args.model,
                            language=language, context_level=context, message_limit=args.limit)
    if not session.store.is_readable():
        print(json.dumps({"error": f"Cannot read {args.db}. Grant Full Disk Access to your terminal."}))
        return 1

    if args.list or args.chat is None:
        convs = session.load_conversations(args.chats)
        print(json.dumps([{"id": c.id, "display_name": c.display_name} for c in convs],
                         ensure_ascii=False, indent=indent))
        return 0

    if args.messages:
        msgs = session.store.fetch_messages(args.chat, args.limit)
        print(json.dumps([m.to_json() for m in msgs], ensure_ascii=False, indent=indent))
        return 0

    if args.transcript:
        session.messages = session.store.fetch_messages(args.chat, args.limit)
        print(session.transcript())
        return 0

    if args.interpret is None and args.draft is None:
        ap.error("with --chat pick one of --messages, --transcript, --interpret, --draft")

    if not session.check_model():
        print(json.dumps({"error": f"Model {args.model!r} is not available. Try: ollama pull {args.model}"}))
        return 1

    async def run() -> None:
        session.mode = Mode.INTERPRET if args.interpret is not None else Mode.DRAFT
        chat = {c.id: c for c in session.load_conversations(args.chats)}.get(args.chat)
        await session.select_conversation(chat or Conversation(args.chat, f"chat {args.chat}"))
        text = args.interpret if args.interpret is not None else args.draft
        if text or session.mode is Mode.DRAFT:
            await session.submit(text)

    asyncio.run(run())
    print(json.dumps(session_snapshot(session, args.show_prompt), ensure_ascii=False, indent=indent))
    return 0

if __name__ == "__main__":
    raise SystemExit(main())
