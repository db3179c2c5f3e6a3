"""Process-wide generation settings, read once at start-up.

Values come from the environment; a `.env` file in the working directory
(or the path passed to load_settings) is loaded first.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field

DEFAULT_TEXT_MODEL = "meta-llama/Llama-4-Maverick-17B-128E-Instruct-FP8"
DEFAULT_CHAT_PATH = "/v1/openai/chat/completions"
DEFAULT_IMAGE_PATH = "/v1/inference/black-forest-labs/FLUX-1-dev"
DEFAULT_TIMEOUT = 150.0  # seconds per request


class Settings(BaseModel):
    api_url: str
    api_key: str
    text_model: str = DEFAULT_TEXT_MODEL
    chat_path: str = DEFAULT_CHAT_PATH
    image_path: str = DEFAULT_IMAGE_PATH
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)


def load_settings(env_file: Path | None = None) -> Settings:
    """Build Settings from EDUSTORY_* environment variables.

    Raises ValueError when the endpoint or the credential is missing.
    """
    load_dotenv(env_file)

    api_url = os.getenv("EDUSTORY_API_URL", "")
    api_key = os.getenv("EDUSTORY_API_KEY", "")
    if not api_url:
        raise ValueError("EDUSTORY_API_URL is not set")
    if not api_key:
        raise ValueError("EDUSTORY_API_KEY is not set")

    return Settings(
        api_url=api_url,
        api_key=api_key,
        text_model=os.getenv("EDUSTORY_TEXT_MODEL", DEFAULT_TEXT_MODEL),
        chat_path=os.getenv("EDUSTORY_CHAT_PATH", DEFAULT_CHAT_PATH),
        image_path=os.getenv("EDUSTORY_IMAGE_PATH", DEFAULT_IMAGE_PATH),
        timeout=float(os.getenv("EDUSTORY_TIMEOUT", str(DEFAULT_TIMEOUT))),
    )
