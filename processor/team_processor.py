"""Validation and ordering of raw team roster records."""
import logging
from typing import Any, Dict, List, Optional

from processor.models import TeamMember

logger = logging.getLogger(__name__)


class TeamProcessor:
    """Turns raw roster JSON into sorted TeamMember objects."""

    def process_members(self, raw_members: List[Dict[str, Any]]) -> List[TeamMember]:
        """
        Parse raw roster records, drop unnamed members and sort the rest.

        Members are ordered by year (newest first), then by name ignoring
        case.

        Args:
            raw_members: List of member objects from the team endpoint

        Returns:
            Sorted list of TeamMember objects
        """
        members = []

        for raw in raw_members:
            member = self._parse_member(raw)
            if member is not None and member.name is not None:
                members.append(member)

        members.sort(key=lambda m: (-m.year, m.name.casefold()))

        logger.info(
            f"Processed {len(members)} named members out of "
            f"{len(raw_members)} roster records"
        )
        return members

    def _parse_member(self, raw: Any) -> Optional[TeamMember]:
        if not isinstance(raw, dict):
            logger.warning(f"Skipping malformed roster record: {raw!r}")
            return None

        name = raw.get('name')
        extra = raw.get('extra')

        return TeamMember(
            id=str(raw.get('id') or raw.get('_id') or ''),
            name=str(name) if name is not None else None,
            access=str(raw.get('access') or ''),
            year=self._parse_year(raw.get('year')),
            extra=dict(extra) if isinstance(extra, dict) else {},
        )

    def _parse_year(self, value: Any) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return 0
