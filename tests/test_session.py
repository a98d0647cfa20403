import asyncio

from message_coach.lib.prompts import Language, Mode
from message_coach.lib.transcript import ContextLevel
from message_coach.models.records import Conversation, Interaction
from message_coach.session import (
    DRAFT_REQUEST_LABEL,
    INTERPRETATION_LABEL,
    SUGGESTED_REPLY_LABEL,
    TIMEOUT_ERROR,
    CoachSession,
)

from conftest import FakeModelService

JANE = Conversation(2, "Jane Doe")
BOOK_CLUB = Conversation(1, "Book Club")


def run(coro):
    return asyncio.run(coro)


def test_load_conversations(store, fake_service):
    session = CoachSession(store, fake_service)
    assert [c.id for c in session.load_conversations()] == [2, 1, 3]
    assert session.find_conversation(1) == BOOK_CLUB
    assert session.find_conversation(42) is None


def test_select_in_interpret_mode(store, fake_service):
    session = CoachSession(store, fake_service, mode=Mode.INTERPRET)
    run(session.select_conversation(JANE))

    assert [i.prompt_label for i in session.interactions] == [INTERPRETATION_LABEL, SUGGESTED_REPLY_LABEL]
    assert session.interactions[0].response_text == (
        "They want to have dinner.\n\nType below to chat more about the conversation"
    )
    assert session.interactions[1].response_text == "**Suggestion:**\n\"Sounds great, see you at 7!\""
    assert len(fake_service.prompts) == 2
    assert "high level interpretation" in session.last_prompt
    assert not session.is_loading
    assert [e.prompt for e in session.debug_entries] == fake_service.prompts


def test_transcript_is_anonymized_and_filtered(store, fake_service):
    session = CoachSession(store, fake_service, mode=Mode.DRAFT)
    run(session.select_conversation(JANE))
    assert session.transcript() == (
        "Other person 1: Hey!\n"
        "Me: Hi Jane\n"
        "Other person 1: Dinner at 7?\n"
        "Other person 1: Sounds good\n"
        "Other person 1: "
    )
    assert "+15551234567" not in session.transcript()


def test_select_in_draft_mode_does_not_call_the_model(store, fake_service):
    session = CoachSession(store, fake_service, mode=Mode.DRAFT)
    run(session.select_conversation(JANE))
    assert len(session.messages) == 6
    assert session.interactions == []
    assert fake_service.prompts == []


def test_switching_conversation_resets_state(store, fake_service):
    session = CoachSession(store, fake_service, mode=Mode.INTERPRET)
    run(session.select_conversation(JANE))
    session.transcript()
    assert len(session.aliases) == 1

    run(session.change_mode(Mode.DRAFT))
    run(session.select_conversation(BOOK_CLUB))
    assert session.interactions == []
    assert session.last_prompt == ""
    assert session.transcript() == "Other person 1: Who's bringing snacks?\nMe: I can"
    assert session.aliases.as_dict() == {"bob@example.com": "Other person 1"}


def test_deselect(store, fake_service):
    session = CoachSession(store, fake_service, mode=Mode.DRAFT)
    run(session.select_conversation(JANE))
    run(session.select_conversation(None))
    assert session.messages == [] and session.selected is None


def test_draft_suggestion_and_refinement(store, fake_service):
    session = CoachSession(store, fake_service, mode=Mode.DRAFT)
    run(session.select_conversation(JANE))

    suggestion = run(session.submit("   "))
    assert suggestion.prompt_label == DRAFT_REQUEST_LABEL
    assert "write a thoughtful, relevant reply" in session.last_prompt

    refined = run(session.submit("  see u at 7  "))
    assert refined == Interaction("see u at 7", "\"See you at 7!\"\nShorter and warmer.")
    assert session.last_prompt.endswith("My Draft:\nsee u at 7")
    assert len(session.interactions) == 2


def test_interpret_question(store, fake_service):
    session = CoachSession(store, fake_service, mode=Mode.DRAFT, language=Language.SPANISH)
    run(session.select_conversation(JANE))
    session.mode = Mode.INTERPRET

    assert run(session.submit("  ")) is None
    assert fake_service.prompts == []

    answer = run(session.submit("¿Está molesta?"))
    assert answer.prompt_label == "¿Está molesta?"
    assert "EN ESPAÑOL" in session.last_prompt


def test_context_level_applies(store, fake_service):
    session = CoachSession(store, fake_service, mode=Mode.DRAFT, context_level=ContextLevel.LOW)
    run(session.select_conversation(JANE))
    run(session.submit(""))
    assert session.last_prompt.endswith(
        "Me: Hi Jane\nOther person 1: Dinner at 7?\nOther person 1: Sounds good\nOther person 1: "
    )


def test_change_mode_to_interpret_runs_interpretation_once(store, fake_service):
    session = CoachSession(store, fake_service, mode=Mode.DRAFT)
    run(session.select_conversation(JANE))
    run(session.change_mode(Mode.INTERPRET))
    assert [i.prompt_label for i in session.interactions] == [INTERPRETATION_LABEL, SUGGESTED_REPLY_LABEL]

    run(session.change_mode(Mode.DRAFT))
    run(session.change_mode(Mode.INTERPRET))
    assert len(session.interactions) == 2


def test_change_mode_without_conversation(store, fake_service):
    session = CoachSession(store, fake_service, mode=Mode.DRAFT)
    run(session.change_mode(Mode.INTERPRET))
    assert session.mode is Mode.INTERPRET
    assert fake_service.prompts == []


def test_spanish_interpretation_footer(store, fake_service):
    session = CoachSession(store, fake_service, language=Language.SPANISH)
    run(session.select_conversation(JANE))
    assert session.interactions[0].response_text.endswith("Escribe abajo para hablar más sobre la conversación")


def test_slow_model_times_out(store):
    slow = FakeModelService(delay=0.5)
    session = CoachSession(store, slow, mode=Mode.DRAFT, timeout=0.05)
    run(session.select_conversation(JANE))
    result = run(session.submit("hello"))
    assert result.response_text == TIMEOUT_ERROR
    assert not session.is_loading


def test_service_error_string_is_shown_like_a_reply(store):
    broken = FakeModelService(replies={"": "Error: Could not run Ollama process."})
    session = CoachSession(store, broken, mode=Mode.DRAFT)
    run(session.select_conversation(JANE))
    assert run(session.submit("")).response_text == "Error: Could not run Ollama process."


def test_check_model(store):
    session = CoachSession(store, FakeModelService(available=False))
    assert session.check_model() is False
    assert session.model_available is False


def test_unreadable_store(tmp_path, resolver, fake_service):
    from message_coach.models.imessage_db import MessageStore

    session = CoachSession(MessageStore(resolver, db_path=str(tmp_path / "missing.db")), fake_service,
                           mode=Mode.DRAFT)
    assert session.load_conversations() == []
    run(session.select_conversation(JANE))
    assert session.messages == []
    assert session.transcript() == ""
