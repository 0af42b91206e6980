import logging
from typing import Optional

import requests

from .base import LLMClient

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = "You are an expert Rust developer who writes precise rustdoc comments."


class LMStudioClient(LLMClient):
    def __init__(self, base_url: str, model: str, timeout: float = 120.0, temperature: float = 0.2):
        self.base_url = base_url
        self.model = model
        self.timeout = timeout
        self.temperature = temperature

    def generate_response(self, prompt: str, system: Optional[str] = None) -> str:
        est_tokens = int(len(prompt.split()) * 1.3)
        logger.debug("[LMStudio] Sending ~%d tokens", est_tokens)

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system or DEFAULT_SYSTEM_PROMPT},
                {"role": "user", "content": prompt}
            ],
            "temperature": self.temperature
        }
        headers = {
            "Content-Type": "application/json"
        }
        try:
            # OpenAI-compatible endpoint layout
            url = f"{self.base_url.rstrip('/')}/chat/completions"
            response = requests.post(url, headers=headers, json=payload, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()

            usage = data.get("usage", {})
            logger.debug(
                "[LMStudio] Received: prompt_tokens=%s, completion_tokens=%s",
                usage.get("prompt_tokens", "?"), usage.get("completion_tokens", "?"),
            )
            return data['choices'][0]['message']['content'] or ""
        except requests.exceptions.RequestException as e:
            logger.error("[LMStudio] Error communicating with LM Studio: %s", e)
            return ""
        except (KeyError, IndexError, TypeError, ValueError) as e:
            logger.error("[LMStudio] Error parsing response from LM Studio: %s", e)
            return ""
