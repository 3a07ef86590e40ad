from __future__ import annotations

from typing import Optional
import logging

import httpx

from app.config import Settings
from app.services.languages import language_name

logger = logging.getLogger("app.translation")


def build_prompt(text: str, source_language: str, target_language: str) -> str:
    return (
        f"Translate the following text from {language_name(source_language)} "
        f"to {language_name(target_language)}. Only output the translation, nothing else:\n\n{text}"
    )


class LemurTranslator:
    """Translates short texts through the provider's LLM task endpoint.

    Any failure falls back to the untranslated text so the live feed keeps
    flowing; the caller never sees an exception from here.
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self._settings = settings
        self._transport = transport

    async def translate(self, text: str, source_language: str, target_language: str) -> str:
        if not text or not text.strip():
            return text
        if source_language == target_language:
            return text
        api_key = self._settings.assemblyai_api_key
        if not api_key:
            logger.warning("Translation skipped: provider API key not configured")
            return text

        payload = {
            "prompt": build_prompt(text, source_language, target_language),
            "input_text": text,
            "final_model": self._settings.translation_model,
            "temperature": 0.2,
            "max_output_size": 1000,
        }
        try:
            async with httpx.AsyncClient(
                timeout=self._settings.translation_timeout, transport=self._transport
            ) as client:
                resp = await client.post(
                    self._settings.translation_url,
                    json=payload,
                    headers={"Authorization": api_key},
                )
        except httpx.TimeoutException:
            logger.error("Translation request timed out")
            return text
        except httpx.HTTPError as e:
            logger.error(f"Translation request failed: {e}")
            return text

        if resp.status_code >= 400:
            logger.error(f"Translation error {resp.status_code}: {resp.text}")
            return text

        try:
            data = resp.json()
        except ValueError:
            logger.error("Translation response was not valid JSON")
            return text
        translated = data.get("response") if isinstance(data, dict) else None
        if not isinstance(translated, str) or not translated.strip():
            return text
        return translated.strip()
