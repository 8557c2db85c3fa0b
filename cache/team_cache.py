"""In-memory TTL cache of the team roster."""
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

from cache.single_flight import SingleFlight
from clients.fed_api import FedApiClient
from processor.models import CacheEntry, TeamMember
from processor.team_processor import TeamProcessor
from utils.retry import retry_with_backoff

logger = logging.getLogger(__name__)

BOARD_ACCESS_CODES = frozenset([
    'PRESIDENT',
    'VICEPRESIDENT',
    'DIRECTOR_TECHNICAL',
    'DIRECTOR_CREATIVE',
    'DIRECTOR_MARKETING',
    'DIRECTOR_OPERATIONS',
    'DIRECTOR_PR_AND_FINANCE',
    'DIRECTOR_HUMAN_RESOURCE',
])


class TeamCache:
    """
    Team roster cache with bounded freshness.

    Reads never raise. A fresh entry is returned without touching the
    network; concurrent misses share a single upstream fetch; a failed
    fetch falls back to the previous roster, or an empty one.
    """

    def __init__(
        self,
        client: FedApiClient,
        ttl: float = 120.0,
        max_attempts: int = 3,
        initial_delay: float = 1.0,
        processor: TeamProcessor = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the cache.

        Args:
            client: Backend API client used for roster fetches
            ttl: Seconds a fetched roster stays fresh (default: 120)
            max_attempts: Fetch attempts per refresh (default: 3)
            initial_delay: First retry delay in seconds (default: 1.0)
            processor: Roster processor (default: TeamProcessor())
            clock: Monotonic time source
            sleep: Function used to wait between retries
        """
        self.client = client
        self.ttl = ttl
        self.max_attempts = max_attempts
        self.initial_delay = initial_delay
        self.processor = processor or TeamProcessor()
        self._clock = clock
        self._sleep = sleep
        self._entry: Optional[CacheEntry[Tuple[TeamMember, ...]]] = None
        self._flight = SingleFlight()
        self.last_error: Optional[str] = None

    def get_members(self) -> List[TeamMember]:
        """
        Return the current roster, fetching it when the cache is stale.

        Returns:
            Members sorted by year descending, then name
        """
        entry = self._entry
        if entry is not None and entry.is_fresh(self._clock(), self.ttl):
            logger.debug("Returning cached team data")
            return list(entry.value)

        if self._flight.in_flight:
            logger.debug("Team fetch in progress, waiting...")
        return list(self._flight.do(self._load))

    def _load(self, force: bool = False) -> Tuple[TeamMember, ...]:
        # Another caller may have refreshed the roster while this one queued.
        entry = self._entry
        if not force and entry is not None and entry.is_fresh(self._clock(), self.ttl):
            return entry.value

        logger.info("Fetching fresh team data from API...")
        try:
            raw_members = retry_with_backoff(
                self.client.fetch_team_members,
                max_attempts=self.max_attempts,
                initial_delay=self.initial_delay,
                sleep=self._sleep,
                description='team fetch',
            )
            members = tuple(self.processor.process_members(raw_members))
        except Exception as e:
            self.last_error = str(e)
            logger.error(
                f"Failed to fetch team data: {e}",
                extra={'error_type': type(e).__name__},
                exc_info=True
            )
            if entry is not None:
                logger.warning("Using stale cached team data due to fetch error")
                return entry.value
            return ()

        self._entry = CacheEntry(value=members, fetched_at=self._clock())
        self.last_error = None
        logger.info(f"Team cache updated with {len(members)} members")
        return members

    def refresh(self) -> List[TeamMember]:
        """Refetch the roster now, keeping the old one as fallback."""
        return list(self._flight.do(lambda: self._load(force=True)))

    def clear_cache(self) -> None:
        self._entry = None
        logger.info("Team cache cleared")

    def find_by_name(self, name: str) -> Optional[TeamMember]:
        """
        Find the first member whose name contains the given text.

        Args:
            name: Name fragment, matched case-insensitively

        Returns:
            Matching TeamMember or None
        """
        needle = name.lower()
        for member in self.get_members():
            if needle in member.name.lower():
                return member
        return None

    def find_by_role(self, role: str) -> List[TeamMember]:
        """
        Find members whose access code equals or contains the given role.

        Args:
            role: Access code or fragment, e.g. "DIRECTOR"

        Returns:
            List of matching members
        """
        return [
            m for m in self.get_members()
            if m.access == role or role in m.access
        ]

    def get_board_members(self) -> List[TeamMember]:
        return [m for m in self.get_members() if m.access in BOARD_ACCESS_CODES]

    def search_members(self, query: str) -> List[TeamMember]:
        """
        Search members by name, access code or title.

        Args:
            query: Search text, matched case-insensitively

        Returns:
            List of matching members; empty for a blank query
        """
        if not query or not query.strip():
            return []

        needle = query.lower()
        matches = []
        for member in self.get_members():
            title = member.extra.get('title')
            haystacks = [member.name, member.access]
            if isinstance(title, str):
                haystacks.append(title)
            if any(needle in text.lower() for text in haystacks):
                matches.append(member)
        return matches

    def get_cache_stats(self) -> Dict[str, Any]:
        now = self._clock()
        entry = self._entry
        return {
            'total_members': len(entry.value) if entry else 0,
            'last_fetch_time': entry.fetched_at if entry else None,
            'cache_age': entry.age(now) if entry else None,
            'cache_ttl': self.ttl,
            'is_fresh': entry is not None and entry.is_fresh(now, self.ttl),
            'last_error': self.last_error,
        }
