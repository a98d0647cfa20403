from __future__ import annotations
import enum
from dataclasses import dataclass
from typing import Optional

class Language(enum.Enum):
    ENGLISH = "English"
    SPANISH = "Spanish"

    @property
    def locale_identifier(self) -> str:
        return "en" if self is Language.ENGLISH else "es"

    @classmethod
    def parse(cls, value: str) -> "Language":
        v = value.strip().lower()
        for lang in cls:
            if v in (lang.value.lower(), lang.name.lower(), lang.locale_identifier):
                return lang
        raise ValueError(f"unknown language: {value!r}")

class Mode(enum.Enum):
    DRAFT = "Draft"
    INTERPRET = "Interpret"

    @classmethod
    def parse(cls, value: str) -> "Mode":
        for mode in cls:
            if value.strip().lower() in (mode.value.lower(), mode.name.lower()):
                return mode
        raise ValueError(f"unknown mode: {value!r}")

@dataclass(frozen=True)
class PromptRequest:
    mode: Mode
    language: Language
    transcript: str
    user_text: Optional[str] = None

HISTORY_HEADER  = "Conversation History:"
DRAFT_HEADER    = "My Draft:"
QUESTION_HEADER = "My question:"

SUGGEST_PROMPT = {
    Language.ENGLISH: "You are an expert communicator. Based on the following conversation, write a thoughtful, relevant reply I could send. Keep it casual and concise. Output ONLY that suggested reply text and nothing else. Keep the reply in the same language as the conversation.",
    Language.SPANISH: "Eres un experto en comunicación. Basándote en la siguiente conversación, redacta una respuesta reflexiva y relevante que yo podría enviar. Manténla casual y concisa. Devuelve SOLO ese texto sugerido y nada más. Mantén la respuesta en el mismo idioma que la conversación.",
}

REFINE_PROMPT = {
    Language.ENGLISH: "You are an expert editor specializing in clear, emotionally-intelligent communication. I want to send the following message. Analyse my draft and provide an improved version for clarity and tone. Output the revised message first, then on a new line provide a ONE-sentence explanation IN ENGLISH of your key changes. Keep the revised message in the same language as the conversation.",
    Language.SPANISH: "Eres un editor experto especializado en comunicación clara y emocionalmente inteligente. Quiero enviar el siguiente mensaje. Analiza mi borrador y proporciona una versión mejorada para mayor claridad y tono. Muestra primero el mensaje revisado y, en la línea siguiente, proporciona UNA frase de explicación EN ESPAÑOL con tus cambios clave. Mantén el mensaje revisado en el mismo idioma que la conversación.",
}

# (opening, closing) around the transcript
INTERPRET_PROMPT = {
    Language.ENGLISH: (
        "You are a communication expert analyzing my conversation. Here is a recent conversation. ",
        "Provide ONLY a brief, casual, high level interpretation of the last few messages. Do NOT suggest any replies. Respond in English, informal, concise tone. Remember you are talking to me about my conversation with other person",
    ),
    Language.SPANISH: (
        "Eres un experto en comunicación analizando mi conversación. Aquí hay una conversación reciente. ",
        "Proporciona SOLO una interpretación breve, casual y de alto nivel de los últimos mensajes. NO sugieras respuestas. Responde en español con tono informal y conciso. Recuerda que me estás hablando sobre mi conversación con otra persona",
    ),
}

QUESTION_PROMPT = {
    Language.ENGLISH: (
        "You are a friendly, concise communication coach. Based on the following conversation and any context, answer my question in ENGLISH",
        "Advise me based on the conversation history and my question.",
    ),
    Language.SPANISH: (
        "Eres un coach de comunicación amigable y conciso. Basándote en la siguiente conversación y cualquier contexto, responde a mi pregunta EN ESPAÑOL",
        "Aconséjame basándote en el historial de la conversación y mi pregunta.",
    ),
}

def compose_prompt(req: PromptRequest) -> str:
    history = req.transcript
    text = req.user_text
    if req.mode is Mode.DRAFT:
        if text:
            return f"{REFINE_PROMPT[req.language]}\n\n{HISTORY_HEADER}\n{history}\n\n{DRAFT_HEADER}\n{text}"
        return f"{SUGGEST_PROMPT[req.language]}\n\n{HISTORY_HEADER}\n{history}"
    if text:
        header, advise = QUESTION_PROMPT[req.language]
        return f"{header}\n\n{HISTORY_HEADER}\n{history}\n\n{QUESTION_HEADER}\n{text}\n\n{advise}\n"
    opening, closing = INTERPRET_PROMPT[req.language]
    return f"{opening}\n\n{history}\n\n{closing}"

# Strings the session itself shows alongside model output
UI_STRINGS = {
    "Type below to chat more about the conversation": "Escribe abajo para hablar más sobre la conversación",
}

def tr(english: str, language: Language) -> str:
    if language is Language.SPANISH:
        return UI_STRINGS.get(english, english)
    return english
