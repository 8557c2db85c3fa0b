"""In-memory TTL cache of event forms, split into upcoming and past."""
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Union

from cache.single_flight import SingleFlight
from clients.fed_api import FedApiClient
from processor.event_processor import EventProcessor
from processor.models import CacheEntry, EventInfo, EventRecord, EventsSnapshot
from utils.retry import retry_with_backoff

logger = logging.getLogger(__name__)


class EventsCache:
    """
    Events cache with bounded freshness and stale fallback.

    Uses the same single-flight guard as the team cache so a burst of
    concurrent misses produces one upstream fetch.
    """

    def __init__(
        self,
        client: FedApiClient,
        ttl: float = 120.0,
        max_attempts: int = 3,
        initial_delay: float = 1.0,
        processor: EventProcessor = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client
        self.ttl = ttl
        self.max_attempts = max_attempts
        self.initial_delay = initial_delay
        self.processor = processor or EventProcessor()
        self._clock = clock
        self._sleep = sleep
        self._entry: Optional[CacheEntry[EventsSnapshot]] = None
        self._flight = SingleFlight()
        self.last_error: Optional[str] = None

    def get_events(self) -> EventsSnapshot:
        """
        Return upcoming and recent past events, fetching when stale.

        Returns:
            EventsSnapshot; empty when nothing could ever be fetched
        """
        entry = self._entry
        if entry is not None and entry.is_fresh(self._clock(), self.ttl):
            logger.debug("Using cached events data")
            return entry.value
        return self._flight.do(self._load)

    def _load(self, force: bool = False) -> EventsSnapshot:
        entry = self._entry
        if not force and entry is not None and entry.is_fresh(self._clock(), self.ttl):
            return entry.value

        logger.info("Fetching fresh events data from API...")
        try:
            raw_events = retry_with_backoff(
                self.client.fetch_events,
                max_attempts=self.max_attempts,
                initial_delay=self.initial_delay,
                sleep=self._sleep,
                description='events fetch',
            )
            snapshot = self.processor.process_events(raw_events)
        except Exception as e:
            self.last_error = str(e)
            logger.error(
                f"Error fetching events: {e}",
                extra={'error_type': type(e).__name__},
                exc_info=True
            )
            if entry is not None and not entry.value.is_empty():
                logger.warning("Using stale cached events due to fetch error")
                return entry.value
            return EventsSnapshot()

        self._entry = CacheEntry(value=snapshot, fetched_at=self._clock())
        self.last_error = None
        logger.info(
            f"Events cache updated: {len(snapshot.upcoming)} upcoming, "
            f"{len(snapshot.past)} past"
        )
        return snapshot

    def refresh(self) -> EventsSnapshot:
        return self._flight.do(lambda: self._load(force=True))

    def clear_cache(self) -> None:
        self._entry = None
        logger.info("Events cache cleared")

    def get_upcoming_events(self) -> List[EventRecord]:
        return list(self.get_events().upcoming)

    def get_past_events(self) -> List[EventInfo]:
        return list(self.get_events().past)

    def search_events(self, query: str) -> List[Union[EventRecord, EventInfo]]:
        """
        Search upcoming and past events by title or description.

        Args:
            query: Search text, matched case-insensitively

        Returns:
            Matching upcoming records followed by matching past infos
        """
        if not isinstance(query, str) or not query.strip():
            logger.warning("Invalid search query")
            return []

        needle = query.lower()
        snapshot = self.get_events()
        matches: List[Union[EventRecord, EventInfo]] = []

        for record in snapshot.upcoming:
            if self._info_matches(record.info, needle):
                matches.append(record)
        for info in snapshot.past:
            if self._info_matches(info, needle):
                matches.append(info)
        return matches

    def get_event_by_id(self, event_id: str) -> Optional[EventRecord]:
        """
        Look up an upcoming event by id.

        Past events are stored without their record id, so only upcoming
        events can be found.

        Args:
            event_id: Event form id

        Returns:
            EventRecord or None
        """
        if not event_id:
            logger.warning("No event ID provided")
            return None

        for record in self.get_events().upcoming:
            if record.id == event_id:
                return record
        return None

    def get_cache_stats(self) -> Dict[str, Any]:
        now = self._clock()
        entry = self._entry
        snapshot = entry.value if entry else EventsSnapshot()
        return {
            'upcoming_count': len(snapshot.upcoming),
            'past_count': len(snapshot.past),
            'last_fetch_time': entry.fetched_at if entry else None,
            'cache_age': entry.age(now) if entry else None,
            'cache_ttl': self.ttl,
            'is_fresh': entry is not None and entry.is_fresh(now, self.ttl),
            'last_error': self.last_error,
        }

    @staticmethod
    def _info_matches(info: EventInfo, needle: str) -> bool:
        description = info.raw.get('eventdescription')
        if needle in info.title.lower():
            return True
        return isinstance(description, str) and needle in description.lower()
