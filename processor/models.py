"""Data models for team, event and chat data."""
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, Generic, Mapping, Optional, Tuple, TypeVar

T = TypeVar('T')


def _read_only(mapping: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class TeamMember:
    """Team roster entry from the backend API."""
    id: str
    name: Optional[str]
    access: str
    year: int
    extra: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        # Cached members are shared between callers
        object.__setattr__(self, 'extra', _read_only(self.extra))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'access': self.access,
            'year': self.year,
            'extra': dict(self.extra),
        }


@dataclass(frozen=True)
class EventInfo:
    """Descriptive part of an event form."""
    title: str
    date: Optional[datetime]
    is_past: bool
    registration_link: Optional[str]
    raw: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'raw', _read_only(self.raw))

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.raw)


@dataclass(frozen=True)
class EventRecord:
    """Event form with its info block and opaque sections."""
    id: str
    info: EventInfo
    sections: Tuple[Any, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'info': self.info.to_dict(),
            'sections': list(self.sections),
        }


@dataclass(frozen=True)
class EventsSnapshot:
    """Upcoming events in upstream order and the most recent past events."""
    upcoming: Tuple[EventRecord, ...] = ()
    past: Tuple[EventInfo, ...] = ()

    def is_empty(self) -> bool:
        return not self.upcoming and not self.past


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """Cached value and the clock reading at which it was fetched."""
    value: T
    fetched_at: float

    def age(self, now: float) -> float:
        return now - self.fetched_at

    def is_fresh(self, now: float, ttl: float) -> bool:
        return self.age(now) < ttl


@dataclass
class ChatMetadata:
    """Context sizes used to answer a chat message."""
    team_count: int
    upcoming_count: int
    past_count: int
    timestamp: str


@dataclass
class ChatResult:
    """Outcome of one send_message call."""
    success: bool
    text: str
    metadata: Optional[ChatMetadata] = None
    error: Optional[str] = None
    timestamp: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {'success': self.success, 'text': self.text}
        if self.metadata is not None:
            result['metadata'] = {
                'teamCount': self.metadata.team_count,
                'upcomingCount': self.metadata.upcoming_count,
                'pastCount': self.metadata.past_count,
                'timestamp': self.metadata.timestamp,
            }
        if self.error is not None:
            result['error'] = self.error
        if self.timestamp is not None:
            result['timestamp'] = self.timestamp
        return result


@dataclass
class HealthResult:
    """Aggregated health of the upstream services."""
    healthy: bool
    services: Dict[str, Dict[str, Any]]
    timestamp: str
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'healthy': self.healthy,
            'services': self.services,
            'timestamp': self.timestamp,
        }
        if self.error is not None:
            result['error'] = self.error
        return result
