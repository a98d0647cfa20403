from __future__ import annotations
import asyncio
from dataclasses import dataclass
from typing import List, Optional, Protocol
from .lib.config import MODEL_TIMEOUT, MESSAGES_PER_CHAT, RECENT_CHATS
from .lib.log import debug, warn
from .lib.prompts import Language, Mode, PromptRequest, compose_prompt, tr
from .lib.text_utils import bold_header_lines
from .lib.transcript import AliasTable, ContextLevel, build_transcript
from .models.imessage_db import MessageStore
from .models.records import Conversation, Interaction, Message

INTERPRETATION_LABEL = "Conversation Interpretation"
SUGGESTED_REPLY_LABEL = "Suggested Reply"
DRAFT_REQUEST_LABEL = "Draft Request"
TIMEOUT_ERROR = "Error: The model did not answer in time."

class ModelService(Protocol):
    def check_model_availability(self, model_name: Optional[str] = None) -> bool: ...
    def execute_prompt(self, prompt: str) -> str: ...

@dataclass(frozen=True)
class DebugEntry:
    prompt: str
    response: str

class CoachSession:
    """
    State for one user working through one conversation at a time.

    Everything that belongs to the selected conversation (messages, sender
    aliases, interactions, last prompt) is reset in select_conversation().
    Model calls run in a worker thread and are awaited one at a time.
    """
    def __init__(self, store: MessageStore, service: ModelService, *,
                 language: Language = Language.ENGLISH,
                 context_level: ContextLevel = ContextLevel.MEDIUM,
                 mode: Mode = Mode.INTERPRET,
                 timeout: float = MODEL_TIMEOUT,
                 message_limit: int = MESSAGES_PER_CHAT):
        self.store = store
        self.service = service
        self.language = language
        self.context_level = context_level
        self.mode = mode
        self.timeout = timeout
        self.message_limit = message_limit

        self.conversations: List[Conversation] = []
        self.selected: Optional[Conversation] = None
        self.messages: List[Message] = []
        self.aliases = AliasTable()
        self.interactions: List[Interaction] = []
        self.debug_entries: List[DebugEntry] = []
        self.last_prompt = ""
        self.is_loading = False
        self.model_available = False

    # -------- store --------
    def load_conversations(self, max_conversations: int = RECENT_CHATS) -> List[Conversation]:
        self.conversations = self.store.list_recent_conversations(max_conversations)
        debug(f"loaded {len(self.conversations)} conversations")
        return self.conversations

    def find_conversation(self, chat_id: int) -> Optional[Conversation]:
        for c in self.conversations:
            if c.id == chat_id:
                return c
        return None

    def check_model(self) -> bool:
        self.model_available = self.service.check_model_availability()
        return self.model_available

    # -------- prompt plumbing --------
    def transcript(self) -> str:
        return build_transcript(self.messages, self.context_level, self.aliases)

    def build_prompt(self, mode: Mode, user_text: Optional[str] = None) -> str:
        req = PromptRequest(mode=mode, language=self.language,
                            transcript=self.transcript(), user_text=user_text)
        return compose_prompt(req)

    async def _ask(self, prompt: str) -> str:
        try:
            response = await asyncio.wait_for(asyncio.to_thread(self.service.execute_prompt, prompt),
                                              timeout=self.timeout)
        except asyncio.TimeoutError:
            warn(f"model call timed out after {self.timeout}s")
            response = TIMEOUT_ERROR
        self.debug_entries.append(DebugEntry(prompt=prompt, response=response))
        return response

    # -------- flows --------
    async def select_conversation(self, conversation: Optional[Conversation]) -> None:
        self.interactions.clear()
        self.last_prompt = ""
        self.aliases.reset()
        self.selected = conversation
        if conversation is None:
            self.messages = []
            return
        self.messages = self.store.fetch_messages(conversation.id, self.message_limit)
        if self.mode is Mode.INTERPRET:
            await self.interpret_conversation()

    async def interpret_conversation(self) -> None:
        """Initial interpretation, then a suggested reply once it has landed."""
        prompt = self.build_prompt(Mode.INTERPRET)
        self.last_prompt = prompt
        self.is_loading = True
        try:
            response = await self._ask(prompt)
        finally:
            self.is_loading = False
        chat_more = tr("Type below to chat more about the conversation", self.language)
        self.interactions.append(Interaction(INTERPRETATION_LABEL, f"{response}\n\n{chat_more}"))
        await self.suggest_reply()

    async def suggest_reply(self) -> None:
        prompt = self.build_prompt(Mode.DRAFT)
        response = await self._ask(prompt)
        self.interactions.append(Interaction(SUGGESTED_REPLY_LABEL, bold_header_lines(response)))

    async def change_mode(self, mode: Mode) -> None:
        self.mode = mode
        if (mode is Mode.INTERPRET and self.selected is not None
                and not self.interactions and not self.is_loading):
            await self.interpret_conversation()

    async def submit(self, text: str) -> Optional[Interaction]:
        """Draft mode: refine `text` or, if blank, suggest a reply. Interpret mode: answer a question."""
        trimmed = (text or "").strip()
        if self.mode is Mode.DRAFT:
            user_text = trimmed or None
            label = trimmed or DRAFT_REQUEST_LABEL
        else:
            if not trimmed:
                return None
            user_text = label = trimmed

        prompt = self.build_prompt(self.mode, user_text)
        self.last_prompt = prompt
        self.is_loading = True
        try:
            response = await self._ask(prompt)
        finally:
            self.is_loading = False
        interaction = Interaction(label, bold_header_lines(response))
        self.interactions.append(interaction)
        return interaction
