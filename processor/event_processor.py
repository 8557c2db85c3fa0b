"""Event processor for partitioning event forms into upcoming and past."""
import logging
from datetime import datetime, timezone
from typing import Any, List, Optional

from processor.models import EventInfo, EventRecord, EventsSnapshot

logger = logging.getLogger(__name__)

OLDEST = datetime.min.replace(tzinfo=timezone.utc)


class EventProcessor:
    """Processor for validating and partitioning event form data."""

    MAX_PAST_EVENTS = 5

    def process_events(self, raw_events: Any) -> EventsSnapshot:
        """
        Split raw event forms into upcoming and past events.

        Upcoming events keep their full record in upstream order. Past
        events are sorted newest first, truncated to MAX_PAST_EVENTS and
        reduced to their info block.

        Args:
            raw_events: List of event forms from the events endpoint

        Returns:
            EventsSnapshot with the upcoming and past subsets
        """
        if not isinstance(raw_events, list):
            logger.error("Invalid events data format")
            return EventsSnapshot()

        upcoming: List[EventRecord] = []
        past: List[EventRecord] = []

        for raw in raw_events:
            try:
                record = self._process_single_event(raw)
            except Exception as e:
                logger.warning(f"Failed to process event {raw!r:.80}: {e}")
                continue

            if record is None:
                continue
            if record.info.is_past:
                past.append(record)
            else:
                upcoming.append(record)

        past.sort(key=lambda r: r.info.date or OLDEST, reverse=True)
        recent_past = tuple(r.info for r in past[:self.MAX_PAST_EVENTS])

        logger.info(
            f"Processed {len(upcoming)} upcoming and {len(past)} past events "
            f"out of {len(raw_events)} total, keeping {len(recent_past)} past"
        )
        return EventsSnapshot(upcoming=tuple(upcoming), past=recent_past)

    def _process_single_event(self, raw: Any) -> Optional[EventRecord]:
        """
        Process a single event form.

        Args:
            raw: Event form dictionary

        Returns:
            EventRecord or None if the form has no info block
        """
        if not isinstance(raw, dict) or not isinstance(raw.get('info'), dict):
            logger.warning("Skipping event without info block")
            return None

        info = raw['info']
        sections = raw.get('sections') or ()

        return EventRecord(
            id=str(raw.get('id') or raw.get('_id') or ''),
            info=EventInfo(
                title=str(info.get('eventTitle') or ''),
                date=self._normalize_date(info.get('eventDate')),
                is_past=bool(info.get('isEventPast')),
                registration_link=info.get('registrationLink'),
                raw=dict(info),
            ),
            sections=tuple(sections) if isinstance(sections, (list, tuple)) else (),
        )

    def _normalize_date(self, value: Any) -> Optional[datetime]:
        """
        Parse an event date into a timezone-aware datetime.

        Args:
            value: ISO 8601 string or one of several common date formats

        Returns:
            Aware datetime (UTC when no offset is given) or None
        """
        if not isinstance(value, str) or not value.strip():
            return None

        date_str = value.strip()
        parsed = None

        try:
            parsed = datetime.fromisoformat(date_str.replace('Z', '+00:00'))
        except ValueError:
            date_formats = [
                '%m/%d/%Y',      # US format
                '%m-%d-%Y',      # US format with dashes
                '%B %d, %Y',     # Full month name
                '%b %d, %Y',     # Abbreviated month name
                '%d/%m/%Y',      # European format
                '%Y/%m/%d',      # Alternative ISO format
            ]
            for fmt in date_formats:
                try:
                    parsed = datetime.strptime(date_str, fmt)
                    break
                except ValueError:
                    continue

        if parsed is None:
            logger.warning(f"Unrecognized event date: {date_str}")
            return None

        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
