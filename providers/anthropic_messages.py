# =============================================================================
# Double Vision - Anthropic Messages Backend
# =============================================================================
# POST https://api.anthropic.com/v1/messages
# x-api-key + anthropic-version headers; the image travels as a base64
# "image" content block. Text is read from content[0].text.
# =============================================================================

from typing import Any, Dict

from providers.http import HTTPChatBackend
from shared.schemas import ImagePayload, ProviderKind

ANTHROPIC_VERSION = "2023-06-01"


class AnthropicBackend(HTTPChatBackend):
    kind = ProviderKind.ANTHROPIC
    endpoint = "https://api.anthropic.com/v1/messages"
    default_model = "claude-3-5-sonnet-latest"

    def _headers(self) -> Dict[str, str]:
        return {
            "x-api-key": self._api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "Content-Type": "application/json",
        }

    def _vision_body(self, image: ImagePayload, prompt: str) -> Dict[str, Any]:
        return {
            "model": self._model,
            "max_tokens": self._max_tokens,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {
                            "type": "image",
                            "source": {
                                "type": "base64",
                                "media_type": image.media_type,
                                "data": image.data,
                            },
                        },
                    ],
                }
            ],
        }

    def _text_body(self, prompt: str) -> Dict[str, Any]:
        return {
            "model": self._model,
            "max_tokens": self._max_tokens,
            "messages": [
                {"role": "user", "content": [{"type": "text", "text": prompt}]}
            ],
        }

    def _extract_text(self, data: Dict[str, Any]) -> str:
        return data["content"][0]["text"]
