"""Tests for ChatbotService orchestration."""
import json
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import Mock

import pytest
import responses

from assistant.chatbot import ChatbotService, build_service
from assistant.context_builder import TEAM_DATA_END, TEAM_DATA_START
from assistant.errors import (
    EMPTY_RESPONSE_MESSAGE,
    INVALID_INPUT_MESSAGE,
    NETWORK_ERROR_MESSAGE,
)
from assistant.gemini_client import GeminiClient
from cache.events_cache import EventsCache
from cache.team_cache import TeamCache
from clients.fed_api import FedApiClient
from config.settings import Settings
from processor.models import EventsSnapshot, TeamMember

BASE_URL = 'https://api.example.org'
TEAM_URL = f"{BASE_URL}/api/user/fetchTeam"
EVENTS_URL = f"{BASE_URL}/api/form/getAllForms"
GEMINI_URL = 'https://gemini.example.com/v1beta/models'
GENERATE_URL = f"{GEMINI_URL}/gemini-test:generateContent"


def answer(text):
    return {'candidates': [{'content': {'parts': [{'text': text}]}}]}


@pytest.fixture
def service():
    """ChatbotService wired with real components and no retry delays."""
    client = FedApiClient(BASE_URL)
    service = ChatbotService(
        TeamCache(client, sleep=Mock()),
        EventsCache(client, sleep=Mock()),
        GeminiClient(
            api_key='test-key',
            model='gemini-test',
            system_prompt='Answer from live data only.',
            api_url=GEMINI_URL,
            sleep=Mock(),
        ),
    )
    yield service
    service.close()


@pytest.fixture
def mock_service():
    """ChatbotService with mocked collaborators."""
    team_cache = Mock()
    team_cache.get_members.return_value = [
        TeamMember(id='1', name='Jane Doe', access='PRESIDENT', year=2025)
    ]
    team_cache.last_error = None
    events_cache = Mock()
    events_cache.get_events.return_value = EventsSnapshot()
    events_cache.last_error = None
    gemini = Mock()
    gemini.generate.return_value = 'An answer'
    gemini.check_health.return_value = True
    with ChatbotService(team_cache, events_cache, gemini) as service:
        yield service


class TestSendMessage:
    """Test cases for send_message."""

    @responses.activate
    def test_who_is_the_president(self, service):
        """Test the full flow from cached data to the model's answer."""
        responses.add(
            responses.GET,
            TEAM_URL,
            json={'success': True, 'data': [
                {'id': '1', 'name': 'Jane Doe', 'access': 'PRESIDENT', 'year': 2025}
            ]}
        )
        responses.add(responses.GET, EVENTS_URL, json={'success': True, 'events': []})
        responses.add(
            responses.POST, GENERATE_URL, json=answer('Jane Doe is the President.')
        )

        result = service.send_message('Who is the president?')

        assert result.success is True
        assert result.text == 'Jane Doe is the President.'
        assert result.metadata.team_count == 1
        assert result.metadata.upcoming_count == 0
        assert result.metadata.past_count == 0

        generate_call = [c for c in responses.calls if c.request.method == 'POST'][0]
        prompt = json.loads(generate_call.request.body)['contents'][0]['parts'][0]['text']
        team_block = prompt.split(TEAM_DATA_START)[1].split(TEAM_DATA_END)[0]
        assert 'Jane Doe' in team_block
        assert 'PRESIDENT' in team_block

    @pytest.mark.parametrize('message', ['', '   \n', None, 42])
    @responses.activate
    def test_invalid_input_makes_no_calls(self, service, message):
        """Test that invalid input is rejected without network traffic."""
        result = service.send_message(message)

        assert result.success is False
        assert result.text == INVALID_INPUT_MESSAGE
        assert len(responses.calls) == 0

    @responses.activate
    def test_data_outage_still_answers(self, service):
        """Test that failing data legs fall back to empty context."""
        responses.add(responses.GET, TEAM_URL, body='down', status=502)
        responses.add(responses.GET, EVENTS_URL, body='down', status=502)
        responses.add(responses.POST, GENERATE_URL, json=answer('No data right now.'))

        result = service.send_message('Any events?')

        assert result.success is True
        assert result.text == 'No data right now.'
        assert result.metadata.team_count == 0

    @responses.activate
    def test_empty_generation_is_a_successful_envelope(self, service):
        """Test that generation failures come back as fixed text."""
        responses.add(responses.GET, TEAM_URL, json={'success': True, 'data': []})
        responses.add(responses.GET, EVENTS_URL, json={'success': True, 'events': []})
        responses.add(responses.POST, GENERATE_URL, json={'candidates': []})

        result = service.send_message('Hello')

        assert result.success is True
        assert result.text == EMPTY_RESPONSE_MESSAGE

    def test_leg_exception_substitutes_default(self, mock_service):
        """Test that an exception from one cache does not fail the call."""
        mock_service.team_cache.get_members.side_effect = RuntimeError('bug')

        result = mock_service.send_message('Hello')

        assert result.success is True
        members_arg = mock_service.gemini_client.generate.call_args.args[1]
        assert members_arg == []

    def test_unexpected_error_returns_failure_envelope(self, mock_service):
        """Test that orchestration errors become a failure result."""
        mock_service.gemini_client.generate.side_effect = RuntimeError('kaboom')

        result = mock_service.send_message('Hello')

        assert result.success is False
        assert result.text == NETWORK_ERROR_MESSAGE
        assert result.error == 'kaboom'
        assert result.timestamp is not None

    def test_to_dict(self, mock_service):
        """Test the serialized success envelope."""
        body = mock_service.send_message('Hello').to_dict()

        assert body['success'] is True
        assert body['text'] == 'An answer'
        assert body['metadata']['teamCount'] == 1
        assert 'error' not in body


class TestPing:
    """Test cases for the health check."""

    def test_all_ok(self, mock_service):
        health = mock_service.ping()

        assert health.healthy is True
        assert health.services['team'] == {'status': 'ok', 'count': 1}
        assert health.services['events'] == {'status': 'ok', 'upcoming': 0, 'past': 0}
        assert health.services['gemini'] == {'status': 'ok'}

    def test_gemini_failure_marks_unhealthy(self, mock_service):
        mock_service.gemini_client.check_health.return_value = False

        health = mock_service.ping()

        assert health.healthy is False
        assert health.services['gemini']['status'] == 'error'

    def test_failed_fetch_marks_unhealthy(self, mock_service):
        """Test that a cache whose last fetch failed reports an error."""
        mock_service.events_cache.last_error = 'timeout'

        health = mock_service.ping()

        assert health.healthy is False
        assert health.services['events']['status'] == 'error'
        assert health.services['events']['message'] == 'timeout'

    def test_unexpected_error(self, mock_service):
        mock_service.events_cache.get_events.side_effect = RuntimeError('bug')

        health = mock_service.ping()

        assert health.healthy is False
        assert health.error == 'bug'


class TestGetStats:
    """Test cases for statistics."""

    def test_counts(self, mock_service):
        stats = mock_service.get_stats()

        assert stats['team'] == {'totalMembers': 1}
        assert stats['events'] == {'upcomingCount': 0, 'pastCount': 0}
        assert 'timestamp' in stats


class TestBuildService:
    """Test cases for service wiring."""

    def test_settings_flow_into_components(self):
        settings = Settings(
            api_base_url=BASE_URL,
            gemini_api_key='k',
            gemini_model='gemini-test',
            system_prompt='prompt',
            team_cache_ttl=30,
            events_cache_ttl=45,
            max_retries=5,
            initial_retry_delay=0.25,
        )

        service = build_service(settings)
        service.close()

        assert service.team_cache.ttl == 30
        assert service.events_cache.ttl == 45
        assert service.team_cache.max_attempts == 5
        assert service.events_cache.initial_delay == 0.25
        assert service.gemini_client.max_attempts == 5
        assert service.gemini_client.endpoint.endswith('/gemini-test:generateContent')
        assert service.team_cache.client is service.events_cache.client


class TestServiceLifecycle:
    """Test cases for releasing the fetch thread pool."""

    def test_close_shuts_down_owned_executor(self, mock_service):
        mock_service.close()

        with pytest.raises(RuntimeError):
            mock_service.executor.submit(lambda: None)

    def test_close_leaves_injected_executor_running(self):
        executor = ThreadPoolExecutor(max_workers=2)
        try:
            service = ChatbotService(Mock(), Mock(), Mock(), executor=executor)
            service.close()

            assert executor.submit(lambda: 'still running').result() == 'still running'
        finally:
            executor.shutdown(wait=True)

    def test_context_manager_closes(self):
        with ChatbotService(Mock(), Mock(), Mock()) as service:
            pass

        with pytest.raises(RuntimeError):
            service.executor.submit(lambda: None)
