"""Client for the hosted chat-completions code-generation service."""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import requests


logger = logging.getLogger(__name__)


class CompletionError(Exception):
    """Raised when the service fails or returns no completion text."""
    pass


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry with exponential backoff. One attempt means no retry."""
    max_attempts: int = 1
    backoff_seconds: float = 2.0
    backoff_factor: float = 2.0

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")

    def delay_before(self, attempt: int) -> float:
        """Delay before the given 1-based attempt (0 for the first)."""
        if attempt <= 1:
            return 0.0
        return self.backoff_seconds * (self.backoff_factor ** (attempt - 2))


class CodeGenerationClient:
    """Sends chat-style prompts and returns the completion text."""

    def __init__(
        self,
        endpoint: str,
        token: str,
        model: str,
        temperature: float = 0.0,
        max_tokens: Optional[int] = 2000,
        timeout: int = 120,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.endpoint = endpoint
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        })
        self._sleep = sleep

    def build_payload(self, system_prompt: str, user_prompt: str) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self.model,
            "temperature": self.temperature,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        }
        if self.max_tokens:
            payload["max_tokens"] = self.max_tokens
        return payload

    def complete(self, system_prompt: str, user_prompt: str,
                 retry: Optional[RetryPolicy] = None) -> str:
        """Return the completion text for one system/user prompt pair.

        Raises:
            CompletionError: If every attempt fails or the response has no completion
        """
        retry = retry or RetryPolicy()
        payload = self.build_payload(system_prompt, user_prompt)
        last_error: Optional[CompletionError] = None

        for attempt in range(1, retry.max_attempts + 1):
            delay = retry.delay_before(attempt)
            if delay:
                logger.info(f"Retrying code-generation call in {delay:.1f}s "
                            f"(attempt {attempt}/{retry.max_attempts})")
                self._sleep(delay)
            try:
                return self._post(payload)
            except CompletionError as e:
                logger.warning(f"Code-generation call failed (attempt {attempt}/{retry.max_attempts}): {e}")
                last_error = e

        raise last_error

    def _post(self, payload: Dict[str, Any]) -> str:
        try:
            response = self.session.post(self.endpoint, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise CompletionError(f"Request to code-generation service failed: {e}") from e

        if not response.ok:
            raise CompletionError(
                f"Code-generation service error ({response.status_code}): {response.text[:500]}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise CompletionError(f"Code-generation service returned invalid JSON: {e}") from e

        content = self.extract_completion(data)
        if not content:
            raise CompletionError("No completion in code-generation service response")
        return content

    @staticmethod
    def extract_completion(data: Any) -> Optional[str]:
        """Completion text at choices[0].message.content, or None."""
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            return None
        return content if isinstance(content, str) else None

    def close(self) -> None:
        self.session.close()
