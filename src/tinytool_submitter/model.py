"""Ollama model client and chat channel.

Manages the local Ollama server (check/start/pull), and exposes a
streaming chat session as a sequence of events: message deltas, the
complete message, idle, or error.
"""

from __future__ import annotations

import json
import logging
import shutil
import subprocess
import time
from dataclasses import dataclass, field
from typing import Any, Iterator, Union

import httpx

DEFAULT_MODEL = "qwen2.5-coder:7b"
OLLAMA_PORT = 11434
OLLAMA_BASE_URL = f"http://localhost:{OLLAMA_PORT}"
PULL_TIMEOUT = 600  # 10 minutes for model download
GENERATE_TIMEOUT = 300  # 5 minutes per reply
VERSION_TIMEOUT = 15

logger = logging.getLogger(__name__)


class ModelError(Exception):
    """Error communicating with the model."""


@dataclass
class MessageDelta:
    """A fragment of the assistant reply."""

    content: str


@dataclass
class Message:
    """The complete assistant reply."""

    content: str


@dataclass
class SessionIdle:
    """The session finished processing the prompt."""


@dataclass
class SessionError:
    """The session failed while processing the prompt."""

    message: str


SessionEvent = Union[MessageDelta, Message, SessionIdle, SessionError]


def resolve_cli_path() -> str:
    """Locate the ollama executable on PATH."""
    return shutil.which("ollama") or "ollama"


@dataclass
class ChatSession:
    """A conversation with one model.

    History is kept between prompts so a follow-up (such as a repair
    request) is answered with the earlier exchange in context.
    """

    client: "OllamaClient"
    model: str
    temperature: float = 0.2
    messages: list[dict[str, str]] = field(default_factory=list)
    connection_lost: bool = False

    def send(self, prompt: str) -> Iterator[SessionEvent]:
        """Send a prompt and stream the reply as events.

        Never raises for transport failures: they are reported as a
        ``SessionError`` event, which always ends the stream.
        """
        self.messages.append({"role": "user", "content": prompt})
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": list(self.messages),
            "stream": True,
            "options": {"temperature": self.temperature},
        }

        chunks: list[str] = []
        try:
            with self.client.http.stream(
                "POST",
                f"{self.client.base_url}/api/chat",
                json=payload,
                timeout=GENERATE_TIMEOUT,
            ) as resp:
                if resp.status_code != 200:
                    resp.read()
                    yield self._fail(
                        f"Ollama returned {resp.status_code}: {resp.text[:200]}"
                    )
                    return
                for line in resp.iter_lines():
                    if not line:
                        continue
                    try:
                        data = json.loads(line)
                    except (ValueError, RecursionError):
                        data = None
                    if not isinstance(data, dict):
                        logger.debug("Skipping malformed stream line: %s", line[:200])
                        continue
                    if data.get("error"):
                        yield self._fail(str(data["error"]))
                        return
                    message = data.get("message") or {}
                    content = message.get("content") if isinstance(message, dict) else None
                    if content and isinstance(content, str):
                        chunks.append(content)
                        yield MessageDelta(content)
                    if data.get("done"):
                        break
        except httpx.TimeoutException:
            yield self._fail(f"Model reply timed out after {GENERATE_TIMEOUT}s")
            return
        except (httpx.ConnectError, httpx.RemoteProtocolError, httpx.ReadError) as e:
            self.connection_lost = True
            yield self._fail(f"Lost connection to Ollama: {e}")
            return
        except httpx.HTTPError as e:
            yield self._fail(str(e))
            return

        reply = "".join(chunks)
        self.messages.append({"role": "assistant", "content": reply})
        yield Message(reply)
        yield SessionIdle()

    def _fail(self, message: str) -> SessionError:
        """Drop the unanswered prompt so history keeps user/assistant pairs."""
        if self.messages and self.messages[-1]["role"] == "user":
            self.messages.pop()
        return SessionError(message)


class OllamaClient:
    """Client for Ollama REST API."""

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        base_url: str = OLLAMA_BASE_URL,
        cli_path: str | None = None,
    ):
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.cli_path = cli_path or resolve_cli_path()
        self.http = httpx.Client(timeout=GENERATE_TIMEOUT)

    def cli_version(self) -> str:
        """Run ``<cli> --version``. Raises ModelError if it cannot run."""
        try:
            result = subprocess.run(
                [self.cli_path, "--version"],
                capture_output=True, text=True, timeout=VERSION_TIMEOUT,
            )
        except FileNotFoundError:
            raise ModelError(f"Ollama CLI was not found at '{self.cli_path}'.")
        except (subprocess.TimeoutExpired, OSError) as e:
            raise ModelError(f"Failed to execute Ollama CLI at '{self.cli_path}': {e}")
        if result.returncode != 0:
            raise ModelError(
                f"Failed to execute Ollama CLI at '{self.cli_path}': "
                f"{(result.stderr or result.stdout).strip()[:200]}"
            )
        return result.stdout.strip()

    def is_ollama_running(self) -> bool:
        """Check if Ollama server is reachable."""
        try:
            resp = self.http.get(f"{self.base_url}/api/tags", timeout=5)
            return resp.status_code == 200
        except (httpx.ConnectError, httpx.TimeoutException):
            return False

    def start_ollama(self) -> bool:
        """Attempt to start Ollama server."""
        try:
            subprocess.Popen(
                [self.cli_path, "serve"],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
            # Wait for server to start
            for _ in range(15):
                time.sleep(1)
                if self.is_ollama_running():
                    return True
            return False
        except FileNotFoundError:
            return False

    def list_models(self) -> list[str]:
        """Names of the locally installed models."""
        try:
            resp = self.http.get(f"{self.base_url}/api/tags", timeout=10)
        except httpx.HTTPError as e:
            raise ModelError(f"Could not list models: {e}")
        if resp.status_code != 200:
            raise ModelError(f"Ollama returned {resp.status_code}: {resp.text[:200]}")
        return [m.get("name", "") for m in resp.json().get("models", []) if m.get("name")]

    def is_model_available(self) -> bool:
        """Check if the configured model is downloaded."""
        try:
            models = self.list_models()
        except ModelError:
            return False
        # Check exact match or with :latest suffix
        return any(
            self.model == m
            or self.model == m.split(":")[0]
            or f"{self.model}:latest" == m
            for m in models
        )

    def pull_model(self, progress_callback=None) -> bool:
        """Download the model. Returns True on success."""
        try:
            with self.http.stream(
                "POST",
                f"{self.base_url}/api/pull",
                json={"name": self.model},
                timeout=PULL_TIMEOUT,
            ) as resp:
                for line in resp.iter_lines():
                    if not line:
                        continue
                    try:
                        data = json.loads(line)
                    except (ValueError, RecursionError):
                        continue
                    if not isinstance(data, dict):
                        continue
                    if progress_callback:
                        progress_callback(
                            data.get("status", ""),
                            data.get("completed", 0),
                            data.get("total", 0),
                        )
        except httpx.HTTPError as e:
            raise ModelError(f"Failed to pull model {self.model}: {e}")
        return self.is_model_available()

    def ensure_running(self, progress_callback=None) -> None:
        """Ensure the Ollama server is reachable, starting it if needed."""
        if self.is_ollama_running():
            return
        if progress_callback:
            progress_callback("Starting Ollama server...", 0, 0)
        if not self.start_ollama():
            raise ModelError(
                "Could not connect to Ollama.\n"
                f"Try: {self.cli_path} --version  and  {self.cli_path} serve"
            )

    def ensure_ready(self, progress_callback=None) -> None:
        """Ensure Ollama is running and model is available."""
        self.ensure_running(progress_callback)
        if not self.is_model_available():
            if progress_callback:
                progress_callback(f"Downloading {self.model} (one-time)...", 0, 0)
            if not self.pull_model(progress_callback):
                raise ModelError(f"Model {self.model} is not available after pull.")

    def create_session(self, model: str | None = None) -> ChatSession:
        """Open a chat session. The client owns the underlying connection."""
        return ChatSession(client=self, model=model or self.model)

    def close(self) -> None:
        self.http.close()
