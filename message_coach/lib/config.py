import os
from dotenv import find_dotenv, load_dotenv

# .env in the working directory; real environment variables win
load_dotenv(find_dotenv(usecwd=True))

# Paths & limits
DEFAULT_DB_PATH   = os.path.expanduser(os.getenv("COACH_CHAT_DB", "~/Library/Messages/chat.db"))
DEFAULT_CONTACTS  = os.path.expanduser(os.getenv("COACH_CONTACTS_CACHE", "~/.contacts_cache.txt"))
CONVERSATION_POOL = int(os.getenv("COACH_CONVERSATION_POOL", "10"))
RECENT_CHATS      = int(os.getenv("COACH_RECENT_CHATS", "5"))
MESSAGES_PER_CHAT = int(os.getenv("COACH_MESSAGES_PER_CHAT", "25"))

# Model service defaults
MODEL_BACKEND = os.getenv("COACH_MODEL_BACKEND", "http")   # http | cli | openai
MODEL_NAME    = os.getenv("COACH_MODEL", "gemma3n:e4b")
OLLAMA_URL    = os.getenv("OLLAMA_HOST", "http://localhost:11434")
OLLAMA_BIN    = os.getenv("COACH_OLLAMA_BIN", "/usr/local/bin/ollama")
MODEL_TIMEOUT = float(os.getenv("COACH_MODEL_TIMEOUT", "120"))
