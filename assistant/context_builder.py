"""Serializes cached team and event data into the model's context block."""
import json
from typing import Any, Sequence

from processor.models import EventsSnapshot, TeamMember

TEAM_DATA_START = '### LIVE TEAM DATA START ###'
TEAM_DATA_END = '### LIVE TEAM DATA END ###'
EVENT_DATA_START = '### LIVE EVENT DATA START ###'
EVENT_DATA_END = '### LIVE EVENT DATA END ###'
PAST_EVENT_DATA_END = '### LIVE PAST EVENT DATA END ###'


def _to_json(items: Any) -> str:
    return json.dumps(items, indent=2, ensure_ascii=False, default=str)


def build_context(members: Sequence[TeamMember], events: EventsSnapshot) -> str:
    """
    Build the delimited ground-truth block sent ahead of the user query.

    The past events section is always present so the model can fall back
    to it when nothing is upcoming.

    Args:
        members: Team members to include
        events: Upcoming and past events to include

    Returns:
        Context text with literal start/end markers around each section
    """
    team_context = (
        f"{TEAM_DATA_START}\n"
        "Team members list (JSON array, use this data source for current roles/names):\n"
        f"{_to_json([m.to_dict() for m in members])}\n"
        f"{TEAM_DATA_END}"
    )

    event_context = (
        f"{EVENT_DATA_START}\n"
        "Events list (JSON array, use this data source for current/upcoming events):\n"
        f"{_to_json([e.to_dict() for e in events.upcoming])}\n"
        f"{EVENT_DATA_END}\n"
        "\n"
        "If there is no upcoming event, mention past events:\n"
        f"{_to_json([info.to_dict() for info in events.past])}\n"
        f"{PAST_EVENT_DATA_END}"
    )

    return f"{team_context}\n\n{event_context}"
