"""Gemini generateContent client with retry and user-facing fallbacks."""
import logging
import time
from typing import Any, Callable, Dict, Sequence

import requests

from assistant.context_builder import build_context
from assistant.errors import (
    GenerationConfigError,
    GenerationEmptyResponse,
    GenerationError,
    GenerationNetworkError,
    GenerationTimeout,
    InvalidInputError,
)
from processor.models import EventsSnapshot, TeamMember
from utils.retry import retry_with_backoff

logger = logging.getLogger(__name__)

CONFIG_ERROR_STATUSES = (400, 401, 403)


class GeminiClient:
    """Client for the Gemini generateContent endpoint."""

    HEALTH_CHECK_QUERY = 'Hello'

    def __init__(
        self,
        api_key: str,
        model: str,
        system_prompt: str,
        api_url: str = 'https://generativelanguage.googleapis.com/v1beta/models',
        timeout: float = 30,
        max_attempts: int = 3,
        initial_delay: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the generation client.

        Args:
            api_key: Gemini API key
            model: Model name, e.g. "gemini-2.0-flash"
            system_prompt: Operator-supplied system instruction
            api_url: Base URL of the models collection
            timeout: HTTP request timeout in seconds (default: 30)
            max_attempts: Attempts per generation (default: 3)
            initial_delay: First retry delay in seconds (default: 1.0)
            sleep: Function used to wait between retries
        """
        self.api_key = api_key
        self.model = model
        self.system_prompt = system_prompt
        self.api_url = api_url.rstrip('/')
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.initial_delay = initial_delay
        self._sleep = sleep

    @property
    def endpoint(self) -> str:
        return f"{self.api_url}/{self.model}:generateContent"

    def generate(
        self,
        query: str,
        members: Sequence[TeamMember] = (),
        events: EventsSnapshot = EventsSnapshot(),
    ) -> str:
        """
        Answer a query using the given team and event data as context.

        Every generation failure is logged and mapped to one of the fixed
        user-facing messages; raw errors are never returned.

        Args:
            query: User question
            members: Team members to include in the context
            events: Events to include in the context

        Returns:
            Model answer, or a fixed user-facing error message

        Raises:
            InvalidInputError: If query is empty or whitespace only
        """
        self._validate_query(query)

        try:
            text = self._generate(query, members, events)
        except GenerationError as e:
            logger.error(
                f"Error generating response: {e}",
                extra={'error_type': type(e).__name__},
                exc_info=True
            )
            return e.user_message

        logger.info("Successfully generated response")
        return text

    def check_health(self) -> bool:
        """Run a minimal generation and report whether real text came back."""
        try:
            self._generate(self.HEALTH_CHECK_QUERY, (), EventsSnapshot())
        except GenerationError as e:
            logger.error(f"Gemini health check failed: {e}")
            return False
        return True

    def _validate_query(self, query: Any) -> None:
        if not isinstance(query, str) or not query.strip():
            raise InvalidInputError('Query must be a non-empty string')

    def _generate(
        self,
        query: str,
        members: Sequence[TeamMember],
        events: EventsSnapshot,
    ) -> str:
        payload = self._build_payload(query, members, events)
        logger.info(f"Generating response for query: {query[:50]}...")

        try:
            response = retry_with_backoff(
                lambda: self._post(payload),
                max_attempts=self.max_attempts,
                initial_delay=self.initial_delay,
                sleep=self._sleep,
                description='Gemini request',
            )
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            if status in CONFIG_ERROR_STATUSES:
                raise GenerationConfigError(f"Gemini rejected request: HTTP {status}") from e
            raise GenerationNetworkError(f"Gemini returned HTTP {status}") from e
        except requests.Timeout as e:
            raise GenerationTimeout(f"Gemini request timed out: {e}") from e
        except Exception as e:
            raise GenerationNetworkError(f"Gemini request failed: {e}") from e

        return self._extract_text(response)

    def _build_payload(
        self,
        query: str,
        members: Sequence[TeamMember],
        events: EventsSnapshot,
    ) -> Dict[str, Any]:
        context = build_context(members, events)
        final_prompt = f"{context}\n\nUser Query: {query}"
        return {
            'contents': [{
                'role': 'user',
                'parts': [{'text': final_prompt}],
            }],
            'systemInstruction': {
                'parts': [{'text': self.system_prompt}],
            },
        }

    def _post(self, payload: Dict[str, Any]) -> requests.Response:
        # Key goes in a header; request URLs end up in exception text and logs
        response = requests.post(
            self.endpoint,
            json=payload,
            headers={
                'Content-Type': 'application/json',
                'x-goog-api-key': self.api_key,
            },
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response

    def _extract_text(self, response: requests.Response) -> str:
        """
        Pull the answer text out of a generateContent response.

        Args:
            response: Successful HTTP response

        Returns:
            Non-empty text at candidates[0].content.parts[0].text

        Raises:
            GenerationEmptyResponse: If the text is missing or blank
        """
        try:
            data = response.json()
        except ValueError as e:
            raise GenerationEmptyResponse('Response body is not JSON') from e

        try:
            text = data['candidates'][0]['content']['parts'][0]['text']
        except (KeyError, IndexError, TypeError):
            text = None

        if not isinstance(text, str) or not text.strip():
            raise GenerationEmptyResponse('Empty or invalid response from AI model')
        return text
