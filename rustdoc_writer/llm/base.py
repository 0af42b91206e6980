from abc import ABC, abstractmethod
from typing import Optional

class LLMClient(ABC):
    @abstractmethod
    def generate_response(self, prompt: str, system: Optional[str] = None) -> str:
        """Return the model's answer to *prompt*, or "" when the call failed."""
        pass
