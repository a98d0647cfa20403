from __future__ import annotations
import os, subprocess
from typing import List, Optional
import requests
from ..lib.config import MODEL_BACKEND, MODEL_NAME, OLLAMA_URL, OLLAMA_BIN, MODEL_TIMEOUT
from ..lib.log import debug, warn

RUN_ERROR    = "Error: Could not run Ollama process."
DECODE_ERROR = "Error: Could not decode Ollama response."

class OllamaHTTPService:
    """Talks to a local `ollama serve` over its REST API."""

    def __init__(self, model: str = MODEL_NAME, base_url: str = OLLAMA_URL,
                 timeout: float = MODEL_TIMEOUT, session: Optional[requests.Session] = None):
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def list_models(self) -> List[str]:
        resp = self.session.get(f"{self.base_url}/api/tags", timeout=5)
        resp.raise_for_status()
        return [m.get("name", "") for m in resp.json().get("models", [])]

    def check_model_availability(self, model_name: Optional[str] = None) -> bool:
        name = model_name or self.model
        try:
            return any(name in m for m in self.list_models())
        except (requests.RequestException, ValueError) as e:
            debug(f"ollama availability check failed: {e}")
            return False

    def execute_prompt(self, prompt: str) -> str:
        payload = {"model": self.model, "prompt": prompt, "stream": False}
        try:
            resp = self.session.post(f"{self.base_url}/api/generate", json=payload, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            warn(f"ollama request failed: {e}")
            return RUN_ERROR
        try:
            text = resp.json()["response"]
        except (ValueError, KeyError, TypeError):
            return DECODE_ERROR
        if not isinstance(text, str):
            return DECODE_ERROR
        return text.strip()

class OllamaCLIService:
    """Shells out to the `ollama` binary, one process per prompt."""

    def __init__(self, model: str = MODEL_NAME, binary: str = OLLAMA_BIN, timeout: float = MODEL_TIMEOUT):
        self.model = model
        self.binary = binary
        self.timeout = timeout

    def _run(self, args: List[str]) -> subprocess.CompletedProcess:
        return subprocess.run([self.binary, *args], capture_output=True, timeout=self.timeout, check=False)

    def check_model_availability(self, model_name: Optional[str] = None) -> bool:
        name = model_name or self.model
        try:
            proc = self._run(["list"])
        except (OSError, subprocess.SubprocessError) as e:
            debug(f"ollama list failed: {e}")
            return False
        try:
            return name in proc.stdout.decode("utf-8")
        except UnicodeDecodeError:
            return False

    def execute_prompt(self, prompt: str) -> str:
        try:
            proc = self._run(["run", self.model, prompt])
        except (OSError, subprocess.SubprocessError) as e:
            warn(f"ollama run failed: {e}")
            return RUN_ERROR
        try:
            return proc.stdout.decode("utf-8").strip()
        except UnicodeDecodeError:
            return DECODE_ERROR

class OpenAICompatService:
    """
    Ollama's OpenAI-compatible endpoint (`/v1`) through the openai client.
    Any other OpenAI-compatible server works the same way.
    """
    def __init__(self, model: str = MODEL_NAME, base_url: str = OLLAMA_URL,
                 timeout: float = MODEL_TIMEOUT, api_key: Optional[str] = None):
        try:
            from openai import OpenAI  # lazy import
        except ModuleNotFoundError as e:
            raise RuntimeError("The 'openai' package is not installed. Run: pip install openai") from e
        api_key = api_key or os.getenv("OPENAI_API_KEY") or "ollama"
        self.client = OpenAI(base_url=f"{base_url.rstrip('/')}/v1", api_key=api_key, timeout=timeout)
        self.model = model

    def check_model_availability(self, model_name: Optional[str] = None) -> bool:
        from openai import OpenAIError
        name = model_name or self.model
        try:
            return any(name in m.id for m in self.client.models.list())
        except OpenAIError as e:
            debug(f"model listing failed: {e}")
            return False

    def execute_prompt(self, prompt: str) -> str:
        from openai import OpenAIError
        try:
            resp = self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
            )
        except OpenAIError as e:
            warn(f"chat completion failed: {e}")
            return RUN_ERROR
        if not resp.choices or resp.choices[0].message.content is None:
            return DECODE_ERROR
        return resp.choices[0].message.content.strip()

def make_model_service(backend: str = MODEL_BACKEND, model: str = MODEL_NAME):
    if backend == "http":
        return OllamaHTTPService(model=model)
    if backend == "cli":
        return OllamaCLIService(model=model)
    if backend == "openai":
        return OpenAICompatService(model=model)
    raise ValueError(f"unknown model backend: {backend!r} (expected http, cli or openai)")
