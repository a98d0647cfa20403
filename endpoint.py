#!/usr/bin/env python3
import os
from typing import Optional
from fastmcp import FastMCP
from message_coach.coach import build_session, session_snapshot
from message_coach.lib.prompts import Language, Mode
from message_coach.lib.transcript import ContextLevel
from message_coach.session import CoachSession

mcp = FastMCP("Message Coach MCP Server")

# --- one coaching session per server process ---
_SESSION: Optional[CoachSession] = None
def _get_session() -> CoachSession:
    global _SESSION
    if _SESSION is None:
        _SESSION = build_session()
    return _SESSION

@mcp.tool(description="Check that the Messages database is readable and the local model is installed")
def check_model() -> dict:
    session = _get_session()
    return {
        "messages_readable": session.store.is_readable(),
        "model_available": session.check_model(),
    }

@mcp.tool(description="List the most recent Messages conversations (id and display name)")
def list_conversations(limit: int = 5) -> dict:
    try:
        convs = _get_session().load_conversations(limit)
        return {"conversations": [{"id": c.id, "display_name": c.display_name} for c in convs]}
    except Exception as e:
        return {"error": f"Error listing conversations: {str(e)}"}

@mcp.tool(description="Select a conversation by id. In Interpret mode this also returns an interpretation and a suggested reply.")
async def select_conversation(chat_id: int) -> dict:
    """
    Select a conversation and reset the session for it.

    Args:
        chat_id: The conversation id from list_conversations
    """
    session = _get_session()
    try:
        if not session.conversations:
            session.load_conversations()
        conversation = session.find_conversation(chat_id)
        if conversation is None:
            return {"error": f"Unknown conversation id: {chat_id}"}
        await session.select_conversation(conversation)
        return session_snapshot(session)
    except Exception as e:
        return {"error": f"Error selecting conversation: {str(e)}"}

@mcp.tool(description="Send text to the coach. Draft mode: improve the draft (or suggest a reply if empty). Interpret mode: answer a question about the conversation.")
async def submit(text: str = "") -> dict:
    """
    Args:
        text: A draft to improve, or a question about the conversation
    """
    session = _get_session()
    if session.selected is None:
        return {"error": "Select a conversation first"}
    try:
        await session.submit(text)
        return session_snapshot(session)
    except Exception as e:
        return {"error": f"Error generating response: {str(e)}"}

@mcp.tool(description="Switch between Draft and Interpret mode")
async def set_mode(mode: str) -> dict:
    try:
        await _get_session().change_mode(Mode.parse(mode))
        return session_snapshot(_get_session())
    except ValueError as e:
        return {"error": str(e)}

@mcp.tool(description="Set how many recent messages feed prompts: Low (4), Medium (10) or Maximum (20)")
def set_context_level(level: str) -> dict:
    try:
        _get_session().context_level = ContextLevel.parse(level)
    except ValueError as e:
        return {"error": str(e)}
    return {"context_level": _get_session().context_level.value}

@mcp.tool(description="Set the prompt language: English or Spanish")
def set_language(language: str) -> dict:
    try:
        _get_session().language = Language.parse(language)
    except ValueError as e:
        return {"error": str(e)}
    return {"language": _get_session().language.value}

@mcp.tool(description="Return the interactions for the selected conversation, split into text and quoted segments")
def get_interactions() -> dict:
    return session_snapshot(_get_session())

@mcp.tool(description="Return the last prompt sent to the model")
def get_last_prompt() -> dict:
    return {"last_prompt": _get_session().last_prompt}

if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8000))
    host = os.environ.get("HOST", "127.0.0.1")

    print(f"Starting FastMCP server on {host}:{port}")

    mcp.run(
        transport="http",
        host=host,
        port=port,
        path="/mcp"
    )
