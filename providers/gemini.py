# =============================================================================
# Double Vision - Google Gemini Backend
# =============================================================================
# POST https://generativelanguage.googleapis.com/v1beta/models/<model>:generateContent
# x-goog-api-key header (kept out of the URL so it never reaches logs); the
# image travels as an "inline_data" part. Text is read from
# candidates[0].content.parts[0].text.
# =============================================================================

from typing import Any, Dict

from providers.http import HTTPChatBackend
from shared.schemas import ImagePayload, ProviderKind

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"


class GeminiBackend(HTTPChatBackend):
    kind = ProviderKind.GOOGLE
    default_model = "gemini-1.5-flash"

    def _url(self) -> str:
        return f"{GEMINI_BASE_URL}/{self._model}:generateContent"

    def _headers(self) -> Dict[str, str]:
        return {
            "x-goog-api-key": self._api_key,
            "Content-Type": "application/json",
        }

    def _generation_config(self) -> Dict[str, Any]:
        return {"maxOutputTokens": self._max_tokens}

    def _vision_body(self, image: ImagePayload, prompt: str) -> Dict[str, Any]:
        return {
            "contents": [
                {
                    "parts": [
                        {"text": prompt},
                        {"inline_data": {"mime_type": image.media_type, "data": image.data}},
                    ]
                }
            ],
            "generationConfig": self._generation_config(),
        }

    def _text_body(self, prompt: str) -> Dict[str, Any]:
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": self._generation_config(),
        }

    def _extract_text(self, data: Dict[str, Any]) -> str:
        return data["candidates"][0]["content"]["parts"][0]["text"]
