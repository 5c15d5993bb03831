# =============================================================================
# Double Vision - OpenAI Chat Completions Backend
# =============================================================================
# POST https://api.openai.com/v1/chat/completions
# Bearer authentication; the image travels as a data URL inside an
# "image_url" content part. Text is read from choices[0].message.content.
# =============================================================================

from typing import Any, Dict

from providers.http import HTTPChatBackend
from shared.schemas import ImagePayload, ProviderKind


class OpenAIBackend(HTTPChatBackend):
    kind = ProviderKind.OPENAI
    endpoint = "https://api.openai.com/v1/chat/completions"
    default_model = "gpt-4o"

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    def _vision_body(self, image: ImagePayload, prompt: str) -> Dict[str, Any]:
        return {
            "model": self._model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {"type": "image_url", "image_url": {"url": image.to_data_url()}},
                    ],
                }
            ],
            "max_tokens": self._max_tokens,
        }

    def _text_body(self, prompt: str) -> Dict[str, Any]:
        return {
            "model": self._model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": self._max_tokens,
        }

    def _extract_text(self, data: Dict[str, Any]) -> str:
        return data["choices"][0]["message"]["content"]
