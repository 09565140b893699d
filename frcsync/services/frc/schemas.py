"""
Transport DTOs for the FRC Events API (v3.0).

Field names follow the API's camelCase JSON through aliases. Every field is
optional and date/count fields stay loosely typed: the mapper decides what a
malformed value means, so one odd record never fails a whole response.
"""
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class FrcModel(BaseModel):
    """Base for API payloads: unknown fields ignored, aliases or names accepted."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class FrcSeasonDto(FrcModel):
    """One season from ``/seasons``."""
    year: Optional[int] = Field(None, validation_alias=AliasChoices("year", "season", "seasonYear"))
    name: Optional[str] = Field(None, validation_alias=AliasChoices("name", "gameName"))
    is_current: Optional[bool] = Field(None, validation_alias=AliasChoices("isCurrent", "current", "is_current"))


class FrcSeasonResponse(FrcModel):
    """Envelope for season lists."""
    seasons: List[FrcSeasonDto] = Field(default_factory=list, alias="Seasons")


class FrcEventDto(FrcModel):
    """One event summary from ``/{season}/events``."""
    code: Optional[str] = None
    name: Optional[str] = None
    type: Optional[str] = None
    date_start: Optional[str] = Field(None, alias="dateStart")
    date_end: Optional[str] = Field(None, alias="dateEnd")
    address: Optional[str] = None
    venue: Optional[str] = None
    city: Optional[str] = None
    state_prov: Optional[str] = Field(None, validation_alias=AliasChoices("stateProv", "stateprov", "state_prov"))
    country: Optional[str] = None
    website: Optional[str] = None
    webcasts: Optional[List[Any]] = None
    reg_open: Optional[str] = Field(None, alias="regOpen")
    reg_close: Optional[str] = Field(None, alias="regClose")
    team_count: Optional[Any] = Field(None, alias="teamCount")
    is_official: Optional[bool] = Field(None, alias="isOfficial")
    is_public: Optional[bool] = Field(None, alias="isPublic")


class FrcEventResponse(FrcModel):
    """Envelope for event lists."""
    events: List[FrcEventDto] = Field(default_factory=list, alias="Events")
    event_count: Optional[int] = Field(None, alias="eventCount")


class FrcRankingDto(FrcModel):
    """One team's row from ``/{season}/rankings/{eventCode}``."""
    team_number: Optional[int] = Field(None, alias="teamNumber")
    rank: Optional[int] = None
    wins: Optional[int] = None
    losses: Optional[int] = None
    ties: Optional[int] = None
    ranking_points: Optional[Any] = Field(None, alias="rankingPoints")


class FrcRankingResponse(FrcModel):
    """Envelope for ranking lists."""
    rankings: List[FrcRankingDto] = Field(default_factory=list, alias="Rankings")


class FrcTeamDto(FrcModel):
    """Single team descriptor from ``/teams/{teamNumber}``."""
    team_number: Optional[int] = Field(None, alias="teamNumber")
    name_full: Optional[str] = Field(None, alias="nameFull")
    name_short: Optional[str] = Field(None, alias="nameShort")
    city: Optional[str] = None
    state_prov: Optional[str] = Field(None, alias="stateProv")
    country: Optional[str] = None
    rookie_year: Optional[int] = Field(None, alias="rookieYear")
    robot_name: Optional[str] = Field(None, alias="robotName")
    school_name: Optional[str] = Field(None, alias="schoolName")
    website: Optional[str] = None
    district_code: Optional[str] = Field(None, alias="districtCode")
