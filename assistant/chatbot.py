"""Chat orchestration: gathers context data and asks the model."""
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Dict, List

from assistant.errors import INVALID_INPUT_MESSAGE, NETWORK_ERROR_MESSAGE
from assistant.gemini_client import GeminiClient
from cache.events_cache import EventsCache
from cache.team_cache import TeamCache
from clients.fed_api import FedApiClient
from config.settings import Settings
from processor.models import (
    ChatMetadata,
    ChatResult,
    EventsSnapshot,
    HealthResult,
    TeamMember,
)

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ChatbotService:
    """
    Single entry point used by the chat front-end.

    Team and event data are loaded concurrently from their caches and
    passed to the generation client as context.
    """

    def __init__(
        self,
        team_cache: TeamCache,
        events_cache: EventsCache,
        gemini_client: GeminiClient,
        executor: ThreadPoolExecutor = None,
    ):
        self.team_cache = team_cache
        self.events_cache = events_cache
        self.gemini_client = gemini_client
        self._owns_executor = executor is None
        self.executor = executor or ThreadPoolExecutor(
            max_workers=8, thread_name_prefix='chatbot-fetch'
        )

    def close(self) -> None:
        """Shut down the fetch thread pool if this service created it."""
        if self._owns_executor:
            self.executor.shutdown(wait=True)

    def __enter__(self) -> 'ChatbotService':
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def send_message(self, message: str) -> ChatResult:
        """
        Answer a chat message with live team and event context.

        Args:
            message: User's question

        Returns:
            ChatResult; success is False only for invalid input or an
            unexpected orchestration failure
        """
        if not isinstance(message, str) or not message.strip():
            logger.warning("Empty or invalid message")
            return ChatResult(success=False, text=INVALID_INPUT_MESSAGE)

        try:
            logger.info(f'Processing message: "{message[:50]}..."')

            members, events = self._gather_context()
            answer = self.gemini_client.generate(message, members, events)

            logger.info("Response generated successfully")
            return ChatResult(
                success=True,
                text=answer,
                metadata=ChatMetadata(
                    team_count=len(members),
                    upcoming_count=len(events.upcoming),
                    past_count=len(events.past),
                    timestamp=_now_iso(),
                ),
            )

        except Exception as e:
            logger.error(
                f"Error processing message: {e}",
                extra={'error_type': type(e).__name__},
                exc_info=True
            )
            return ChatResult(
                success=False,
                text=NETWORK_ERROR_MESSAGE,
                error=str(e),
                timestamp=_now_iso(),
            )

    def ping(self) -> HealthResult:
        """
        Check the team, events and Gemini services.

        Returns:
            HealthResult; healthy only when all three report ok
        """
        logger.info("Running health check...")
        services: Dict[str, Dict[str, Any]] = {}

        try:
            members = self.team_cache.get_members()
            services['team'] = self._cache_status(
                self.team_cache.last_error, {'count': len(members)}
            )

            events = self.events_cache.get_events()
            services['events'] = self._cache_status(
                self.events_cache.last_error,
                {'upcoming': len(events.upcoming), 'past': len(events.past)},
            )

            gemini_ok = self.gemini_client.check_health()
            services['gemini'] = {'status': 'ok' if gemini_ok else 'error'}

        except Exception as e:
            logger.error(f"Health check failed: {e}", exc_info=True)
            return HealthResult(
                healthy=False, services=services, timestamp=_now_iso(), error=str(e)
            )

        healthy = all(s['status'] == 'ok' for s in services.values())
        logger.info(f"Health check complete: {'PASS' if healthy else 'FAIL'}")
        return HealthResult(healthy=healthy, services=services, timestamp=_now_iso())

    def get_stats(self) -> Dict[str, Any]:
        """
        Report how much team and event data is available.

        Returns:
            Dict with team and event counts and a timestamp
        """
        try:
            members, events = self._gather_context()
        except Exception as e:
            logger.error(f"Error getting stats: {e}", exc_info=True)
            return {'error': str(e), 'timestamp': _now_iso()}

        return {
            'team': {
                'totalMembers': len(members),
            },
            'events': {
                'upcomingCount': len(events.upcoming),
                'pastCount': len(events.past),
            },
            'timestamp': _now_iso(),
        }

    def _gather_context(self):
        team_future = self.executor.submit(self.team_cache.get_members)
        events_future = self.executor.submit(self.events_cache.get_events)

        members: List[TeamMember]
        try:
            members = team_future.result()
        except Exception as e:
            logger.error(f"Team data fetch failed: {e}", exc_info=True)
            members = []

        try:
            events = events_future.result()
        except Exception as e:
            logger.error(f"Events data fetch failed: {e}", exc_info=True)
            events = EventsSnapshot()

        return members, events

    @staticmethod
    def _cache_status(last_error, details: Dict[str, Any]) -> Dict[str, Any]:
        if last_error:
            return {'status': 'error', 'message': last_error, **details}
        return {'status': 'ok', **details}


def build_service(settings: Settings) -> ChatbotService:
    """
    Wire up one client, both caches and the Gemini client.

    Args:
        settings: Validated settings

    Returns:
        Ready-to-use ChatbotService
    """
    api_client = FedApiClient(settings.api_base_url, timeout=settings.data_timeout)

    team_cache = TeamCache(
        api_client,
        ttl=settings.team_cache_ttl,
        max_attempts=settings.max_retries,
        initial_delay=settings.initial_retry_delay,
    )
    events_cache = EventsCache(
        api_client,
        ttl=settings.events_cache_ttl,
        max_attempts=settings.max_retries,
        initial_delay=settings.initial_retry_delay,
    )
    gemini_client = GeminiClient(
        api_key=settings.gemini_api_key,
        model=settings.gemini_model,
        system_prompt=settings.system_prompt,
        api_url=settings.gemini_api_url,
        timeout=settings.generation_timeout,
        max_attempts=settings.max_retries,
        initial_delay=settings.initial_retry_delay,
    )

    logger.info(f"Initialized {settings.chatbot_name} chatbot service")
    return ChatbotService(team_cache, events_cache, gemini_client)
