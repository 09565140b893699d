"""Tests for the FRC DTO -> domain mapper."""
from datetime import date, datetime
from decimal import Decimal

import pytest

from frcsync.models.models import EventType
from frcsync.services.frc.mapper import (
    map_event,
    map_event_type,
    map_ranking,
    parse_date,
    parse_datetime,
)
from frcsync.services.frc.schemas import FrcEventDto, FrcRankingDto


class TestEventTypeMapping:

    @pytest.mark.parametrize("raw,expected", [
        ("Regional", EventType.REGIONAL),
        ("REGIONAL", EventType.REGIONAL),
        ("DistrictEvent", EventType.DISTRICT),
        ("district", EventType.DISTRICT),
        ("district championship", EventType.DISTRICT_CHAMPIONSHIP),
        ("DistrictChampionshipWithLevels", EventType.DISTRICT_CHAMPIONSHIP),
        ("dcmp", EventType.DISTRICT_CHAMPIONSHIP),
        ("Championship", EventType.CHAMPIONSHIP),
        ("ChampionshipSubdivision", EventType.CHAMPIONSHIP),
        ("cmp", EventType.CHAMPIONSHIP),
        ("OffSeason", EventType.OFF_SEASON),
        ("off-season", EventType.OFF_SEASON),
        ("off_season", EventType.OFF_SEASON),
        ("Scrimmage", EventType.SCRIMMAGE),
    ])
    def test_known_types(self, raw, expected):
        assert map_event_type(raw) is expected

    @pytest.mark.parametrize("raw", [None, "", "Preseason Kickoff", "unknown"])
    def test_unknown_types_fall_back_to_scrimmage(self, raw):
        assert map_event_type(raw) is EventType.SCRIMMAGE


class TestDateParsing:

    def test_date_time_string(self):
        assert parse_date("2025-03-06T00:00:00") == date(2025, 3, 6)

    def test_plain_date(self):
        assert parse_date("2025-03-06") == date(2025, 3, 6)

    def test_zulu_suffix(self):
        assert parse_date("2025-03-06T09:30:00Z") == date(2025, 3, 6)

    @pytest.mark.parametrize("raw", [None, "", "not a date", "2025-13-40", 20250306])
    def test_invalid_dates_are_none(self, raw):
        assert parse_date(raw) is None

    def test_datetime_offset_converted_to_naive_utc(self):
        assert parse_datetime("2025-01-10T08:00:00-08:00") == datetime(2025, 1, 10, 16, 0, 0)

    def test_datetime_zulu(self):
        parsed = parse_datetime("2025-01-10T16:00:00Z")
        assert parsed == datetime(2025, 1, 10, 16, 0, 0)
        assert parsed.tzinfo is None

    def test_naive_datetime_kept(self):
        assert parse_datetime("2025-01-10T16:00:00") == datetime(2025, 1, 10, 16, 0, 0)

    def test_invalid_datetime_is_none(self):
        assert parse_datetime("yesterday") is None


class TestMapEvent:

    def test_full_payload(self):
        dto = FrcEventDto.model_validate({
            "code": "CASJ",
            "name": "Silicon Valley Regional",
            "type": "Regional",
            "dateStart": "2025-03-06T00:00:00",
            "dateEnd": "2025-03-08T23:59:59",
            "address": "525 W Santa Clara St",
            "venue": "SAP Center",
            "city": "San Jose",
            "stateprov": "CA",
            "country": "USA",
            "website": "https://svr.example.org",
            "webcasts": ["https://twitch.tv/firstinspires"],
            "regOpen": "2024-09-01T17:00:00Z",
            "regClose": "2025-01-15T17:00:00Z",
            "teamCount": 60,
            "isOfficial": True,
            "isPublic": False,
        })

        event = map_event(dto, 2025)

        assert event.event_code == "CASJ"
        assert event.season_year == 2025
        assert event.event_type == EventType.REGIONAL.value
        assert event.start_date == date(2025, 3, 6)
        assert event.end_date == date(2025, 3, 8)
        assert event.location == "525 W Santa Clara St"
        assert event.state_province == "CA"
        assert event.live_stream_url == "https://twitch.tv/firstinspires"
        assert event.registration_open == datetime(2024, 9, 1, 17, 0, 0)
        assert event.team_count == 60
        assert event.is_public is False
        assert event.last_synced is None
        assert event.duration_days() == 3

    def test_sparse_payload_uses_defaults(self):
        event = map_event({"code": "TEST"}, 2024)

        assert event.event_type == EventType.SCRIMMAGE.value
        assert event.start_date is None
        assert event.team_count is None
        assert event.is_official is True
        assert event.is_public is True
        assert event.duration_days() == 0
        assert event.days_until_start() == -1

    def test_state_province_spellings(self):
        assert map_event({"code": "A", "stateProv": "MI"}, 2025).state_province == "MI"
        assert map_event({"code": "A", "stateprov": "ON"}, 2025).state_province == "ON"

    def test_malformed_optional_fields_do_not_fail_record(self):
        event = map_event({"code": "ODD", "dateStart": "TBD", "teamCount": "many"}, 2025)

        assert event.event_code == "ODD"
        assert event.start_date is None
        assert event.team_count is None

    def test_webcast_objects(self):
        event = map_event({"code": "A", "webcasts": [{}, {"url": "https://youtube.com/live/x"}]}, 2025)

        assert event.live_stream_url == "https://youtube.com/live/x"

    def test_mapping_is_pure(self):
        dto = FrcEventDto.model_validate({"code": "CASJ", "name": "X"})

        first = map_event(dto, 2025)
        second = map_event(dto, 2025)

        assert first is not second
        assert first.to_dict() == second.to_dict()


class TestMapRanking:

    def test_ranking_points_are_decimal(self):
        ranking = map_ranking(
            FrcRankingDto.model_validate({"teamNumber": 254, "rank": 1, "wins": 11, "losses": 1, "ties": 0,
                                          "rankingPoints": 3.1}),
            "CASJ", 2025,
        )

        assert ranking.team_number == 254
        assert ranking.rank == 1
        assert ranking.ranking_points == Decimal("3.1")
        assert isinstance(ranking.ranking_points, Decimal)

    def test_missing_points(self):
        ranking = map_ranking({"teamNumber": 1678, "rankingPoints": None}, "CASJ", 2025)

        assert ranking.ranking_points is None
        assert ranking.to_dict()["ranking_points"] is None

    def test_unparsable_points(self):
        assert map_ranking({"teamNumber": 1, "rankingPoints": "n/a"}, "CASJ", 2025).ranking_points is None
