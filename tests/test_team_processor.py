"""Unit tests for TeamProcessor."""
import itertools

import pytest

from processor.team_processor import TeamProcessor


ROSTER = [
    {'_id': '1', 'name': 'bob', 'access': 'MEMBER', 'year': 2024},
    {'_id': '2', 'name': 'Alice', 'access': 'DIRECTOR_TECHNICAL', 'year': 2025},
    {'_id': '3', 'name': None, 'access': 'MEMBER', 'year': 2026},
    {'_id': '4', 'name': 'Carol', 'access': 'PRESIDENT', 'year': 2025},
    {'_id': '5', 'name': 'adam', 'access': 'MEMBER', 'year': 2024},
]


class TestTeamProcessor:
    """Test cases for TeamProcessor class."""

    @pytest.mark.parametrize('order', list(itertools.permutations(range(len(ROSTER)))))
    def test_sorted_by_year_then_name_for_all_orders(self, order):
        """Test the year-descending, case-insensitive name ordering."""
        processor = TeamProcessor()

        members = processor.process_members([ROSTER[i] for i in order])

        assert [m.name for m in members] == ['Alice', 'Carol', 'adam', 'bob']

    def test_null_names_excluded(self):
        """Test that unnamed roster records are dropped."""
        processor = TeamProcessor()

        members = processor.process_members(ROSTER)

        assert all(m.name is not None for m in members)
        assert '3' not in [m.id for m in members]

    def test_fields_parsed(self):
        """Test that id, access, year and extra are read from the record."""
        processor = TeamProcessor()

        raw = [{
            'id': 'abc',
            'name': 'Jane Doe',
            'access': 'PRESIDENT',
            'year': '2025',
            'extra': {'title': 'President', 'linkedin': 'jane'}
        }]

        member = processor.process_members(raw)[0]

        assert member.id == 'abc'
        assert member.access == 'PRESIDENT'
        assert member.year == 2025
        assert member.extra == {'title': 'President', 'linkedin': 'jane'}

    def test_malformed_records_skipped(self):
        """Test that non-dict records and bad years do not break processing."""
        processor = TeamProcessor()

        members = processor.process_members(
            ['junk', {'name': 'Zed', 'year': 'unknown'}]
        )

        assert len(members) == 1
        assert members[0].year == 0
        assert members[0].access == ''
