"""Generation client — HTTP connection to an OpenAI-compatible chat backend.

The pipeline injects a generator matching the protocol:

    async def generate(self, stage, turns, *, temperature, top_p, structured=True) -> str: ...

`stage` identifies which pipeline step is calling (e.g. "story", "repair",
"quiz"). The implementation may use it for logging; the HTTP client sends
the same request shape for every stage.

Production code builds one HttpGenerator at process start (via
HttpGenerator.from_settings) and hands it to StoryPipeline. The underlying
httpx.AsyncClient is long-lived and holds no request-scoped state, so
concurrent operations can share it. Tests use StubGenerator (defined in the
test helpers) instead.
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import TYPE_CHECKING, Protocol

import httpx

from edustory.models import ChatTurn

if TYPE_CHECKING:
    from edustory.config import Settings

logger = logging.getLogger(__name__)

PNG_DATA_URI_PREFIX = "data:image/png;base64,"


# ---------------------------------------------------------------------------
# Protocol: every generator implementation must match this signature
# ---------------------------------------------------------------------------

class Generator(Protocol):
    async def generate(
        self,
        stage: str,
        turns: list[ChatTurn],
        *,
        temperature: float,
        top_p: float,
        structured: bool = True,
    ) -> str: ...


def check_request(turns: list[ChatTurn], temperature: float, top_p: float) -> None:
    """Reject caller misuse before anything is sent. Raises ValueError."""
    if not turns:
        raise ValueError("No messages to send")
    if not 0.0 <= temperature <= 1.0:
        raise ValueError(f"Invalid temperature: {temperature}")
    if not 0.0 <= top_p <= 1.0:
        raise ValueError(f"Invalid top_p: {top_p}")


# ---------------------------------------------------------------------------
# HttpGenerator: connects to a real backend
# ---------------------------------------------------------------------------

class HttpGenerator:
    """Async client for chat-completion and image backends.

    Chat:   POST {chat_path}   {"model", "messages", "temperature", "top_p",
                                "response_format"?}
            Response: {"choices": [{"message": {"content": "..."}}]}
    Image:  POST {image_path}  {"prompt", "width", "height"}
            Response: {"images": ["data:image/png;base64,..."]}

    Args:
        client:     Pre-configured httpx.AsyncClient (base URL, bearer token,
                    timeout). Shared by every call.
        model:      Model identifier sent with every chat request.
        chat_path:  Path of the chat-completion endpoint.
        image_path: Path of the image endpoint.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        model: str,
        chat_path: str = "/v1/openai/chat/completions",
        image_path: str = "/v1/inference/black-forest-labs/FLUX-1-dev",
    ) -> None:
        self._client = client
        self._model = model
        self._chat_path = chat_path
        self._image_path = image_path

    @classmethod
    def from_settings(cls, settings: Settings) -> HttpGenerator:
        client = httpx.AsyncClient(
            base_url=settings.api_url.rstrip("/"),
            headers={
                "Authorization": f"Bearer {settings.api_key}",
                "Content-Type": "application/json",
            },
            timeout=settings.timeout,
        )
        logger.info("generation client ready base_url=%s model=%s",
                    settings.api_url, settings.text_model)
        return cls(
            client,
            model=settings.text_model,
            chat_path=settings.chat_path,
            image_path=settings.image_path,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> HttpGenerator:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def _build_body(
        self, turns: list[ChatTurn], temperature: float, top_p: float, structured: bool
    ) -> dict:
        body: dict = {
            "model": self._model,
            "messages": [t.model_dump() for t in turns],
            "temperature": temperature,
            "top_p": top_p,
        }
        if structured:
            body["response_format"] = {"type": "json_object"}
        return body

    async def _post(self, path: str, body: dict) -> dict:
        try:
            resp = await self._client.post(path, json=body)
            resp.raise_for_status()
        except httpx.ConnectError as e:
            raise GenerationError(f"Cannot connect to generation backend at {path}") from e
        except httpx.HTTPStatusError as e:
            raise GenerationError(
                f"Generation backend returned HTTP {e.response.status_code}"
            ) from e
        except httpx.TimeoutException as e:
            raise GenerationError("Generation backend timed out") from e
        except httpx.TransportError as e:
            raise GenerationError(f"Transport error talking to generation backend: {e}") from e

        try:
            data = resp.json()
        except ValueError as e:
            raise GenerationError("Generation backend returned a non-JSON body") from e
        if not isinstance(data, dict):
            raise GenerationError("Unexpected response format from generation backend")
        return data

    def _parse_response(self, data: dict) -> str:
        """Extract the first candidate's message text."""
        choices = data.get("choices")
        if not choices or not isinstance(choices[0], dict):
            raise GenerationError("Unexpected response format: no choices")
        message = choices[0].get("message") or {}
        content = message.get("content")
        if not isinstance(content, str) or not content.strip():
            raise GenerationError("Assistant content is missing or empty")
        return content

    async def generate(
        self,
        stage: str,
        turns: list[ChatTurn],
        *,
        temperature: float,
        top_p: float,
        structured: bool = True,
    ) -> str:
        check_request(turns, temperature, top_p)
        body = self._build_body(turns, temperature, top_p, structured)
        logger.debug("generate stage=%s turns=%d temperature=%s top_p=%s",
                     stage, len(turns), temperature, top_p)

        text = self._parse_response(await self._post(self._chat_path, body))
        logger.debug("generate response stage=%s len=%d", stage, len(text))
        return text

    async def generate_image(self, prompt: str, width: int, height: int) -> bytes:
        """Render one PNG image. One shot, no retries."""
        if not prompt:
            raise ValueError("Image prompt must not be empty")
        logger.debug("generate_image %dx%d prompt_len=%d", width, height, len(prompt))

        data = await self._post(
            self._image_path, {"prompt": prompt, "width": width, "height": height}
        )
        images = data.get("images")
        if not images or not isinstance(images[0], str):
            raise GenerationError("Unexpected response format: no images")
        encoded = images[0]
        if not encoded.startswith(PNG_DATA_URI_PREFIX):
            raise GenerationError("Image content is not a base64 PNG data URI")
        try:
            return base64.b64decode(encoded[len(PNG_DATA_URI_PREFIX):], validate=True)
        except binascii.Error as e:
            raise GenerationError("Image content is not valid base64") from e


# ---------------------------------------------------------------------------
# GenerationError: raised by HttpGenerator for all connection and protocol failures
# ---------------------------------------------------------------------------

class GenerationError(RuntimeError):
    """Raised when the backend cannot be reached or breaks the response contract."""
