"""HTTP client for the FED backend team and event endpoints."""
import logging
from typing import Any, Dict, List

import requests

from assistant.errors import UpstreamUnavailableError

logger = logging.getLogger(__name__)


class FedApiClient:
    """Client for the FED backend REST API."""

    TEAM_ENDPOINT = '/api/user/fetchTeam'
    EVENTS_ENDPOINT = '/api/form/getAllForms'

    def __init__(self, base_url: str, timeout: float = 10):
        """
        Initialize the API client.

        Args:
            base_url: Backend base URL, without trailing slash
            timeout: HTTP request timeout in seconds (default: 10)
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout

    def fetch_team_members(self) -> List[Dict[str, Any]]:
        """
        Fetch the raw team roster.

        Returns:
            List of member objects as returned by the backend

        Raises:
            UpstreamUnavailableError: On transport errors or a malformed payload
        """
        payload = self._get_json(self.TEAM_ENDPOINT)
        members = payload.get('data')

        if not payload.get('success') or not isinstance(members, list):
            raise UpstreamUnavailableError('Invalid response format from team API')

        logger.info(f"Fetched {len(members)} roster records")
        return members

    def fetch_events(self) -> List[Dict[str, Any]]:
        """
        Fetch all event forms.

        Returns:
            List of event form objects as returned by the backend

        Raises:
            UpstreamUnavailableError: On transport errors or a malformed payload
        """
        payload = self._get_json(self.EVENTS_ENDPOINT)
        events = payload.get('events')

        if not payload.get('success') or not isinstance(events, list):
            raise UpstreamUnavailableError('Invalid response format from events API')

        logger.info(f"Fetched {len(events)} event forms")
        return events

    def _get_json(self, endpoint: str) -> Dict[str, Any]:
        url = f"{self.base_url}{endpoint}"
        try:
            response = requests.get(url, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as e:
            raise UpstreamUnavailableError(f"GET {endpoint} failed: {e}") from e
        except ValueError as e:
            raise UpstreamUnavailableError(f"GET {endpoint} returned invalid JSON") from e

        if not isinstance(payload, dict):
            raise UpstreamUnavailableError(f"GET {endpoint} returned unexpected payload")
        return payload
