import logging
from typing import Optional

import requests

from .base import LLMClient

logger = logging.getLogger(__name__)


class OllamaClient(LLMClient):
    def __init__(self, base_url: str, model: str, timeout: float = 120.0):
        self.base_url = base_url
        self.model = model
        self.timeout = timeout

    def generate_response(self, prompt: str, system: Optional[str] = None) -> str:
        est_tokens = int(len(prompt.split()) * 1.3)
        logger.debug("[Ollama] Sending ~%d est. tokens", est_tokens)

        payload = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
        }
        if system:
            payload["system"] = system
        try:
            response = requests.post(self.base_url, json=payload, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
            result = data.get("response", "")

            logger.debug(
                "[Ollama] Usage: prompt=%s completion=%s",
                data.get("prompt_eval_count", est_tokens), data.get("eval_count", 0),
            )
            return result if isinstance(result, str) else ""
        except requests.exceptions.RequestException as e:
            logger.error("[Ollama] Connection error: %s", e)
            return ""
        except ValueError as e:
            logger.error("[Ollama] Invalid JSON in response: %s", e)
            return ""
