"""
Configuration management using Pydantic models loaded from YAML.
"""

from datetime import time
from pathlib import Path
from typing import List, Optional, Sequence

import pendulum
import yaml
from pendulum import DateTime
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.models import Appointment, Attendee, WorkingHours, validate_timezone


class DefaultsConfig(BaseModel):
    """Default settings for search."""
    duration_minutes: int = 30
    granularity_minutes: int = 15
    max_proposals: int = 5
    search_days: int = 7

    @field_validator("duration_minutes", "granularity_minutes", "search_days")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        """Ensure durations are positive."""
        if value <= 0:
            raise ValueError(f"value must be greater than zero, got {value}")
        return value

    @field_validator("max_proposals")
    @classmethod
    def validate_max_proposals(cls, value: int) -> int:
        if value < 0:
            raise ValueError(f"max_proposals must not be negative, got {value}")
        return value

    def get_duration(self) -> pendulum.Duration:
        return pendulum.duration(minutes=self.duration_minutes)

    def get_granularity(self) -> pendulum.Duration:
        return pendulum.duration(minutes=self.granularity_minutes)


class WorkingHoursConfig(BaseModel):
    """Daily working hours in the attendee's local time."""
    start: time = time(9, 0)
    end: time = time(17, 0)

    @field_validator("start", "end", mode="before")
    @classmethod
    def parse_sexagesimal(cls, value):
        """YAML 1.1 reads an unquoted 17:00 as the sexagesimal integer 1020."""
        if isinstance(value, int):
            return time(hour=value // 60, minute=value % 60)
        return value

    @model_validator(mode="after")
    def validate_hours_order(self) -> "WorkingHoursConfig":
        """Ensure the working day does not end before it starts."""
        if self.end < self.start:
            raise ValueError("working hours end must not be before start")
        return self


class AppointmentConfig(BaseModel):
    """An appointment given inline in the configuration."""
    start: str
    end: str
    timezone: Optional[str] = None  # Defaults to the attendee's zone
    title: str = ""

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, value: Optional[str]) -> Optional[str]:
        return None if value is None else validate_timezone(value)

    def to_appointment(self, default_timezone: str) -> Appointment:
        """
        Build the domain appointment.

        Raises:
            ValueError: If start or end is not an ISO 8601 datetime
        """
        timezone = self.timezone or default_timezone
        return Appointment(
            start=_parse_datetime(self.start, timezone),
            end=_parse_datetime(self.end, timezone),
            title=self.title,
        )


class AttendeeConfig(BaseModel):
    """Attendee configuration."""
    name: str  # Used as identity
    timezone: str = "UTC"
    working_hours: WorkingHoursConfig = Field(default_factory=WorkingHoursConfig)
    exclude_days: List[int] = Field(default_factory=list)  # 0=Monday, 6=Sunday
    appointments: List[AppointmentConfig] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("attendee name must not be empty")
        return value

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, value: str) -> str:
        return validate_timezone(value)

    @field_validator("exclude_days")
    @classmethod
    def validate_exclude_days(cls, value: List[int]) -> List[int]:
        """Ensure weekdays are in valid range and deduplicated."""
        invalid_days = [day for day in value if day not in range(7)]
        if invalid_days:
            raise ValueError(f"exclude_days must be between 0 and 6, got {invalid_days}")
        return list(dict.fromkeys(value))

    def to_attendee(self) -> Attendee:
        """Build the domain attendee profile."""
        return Attendee(
            name=self.name,
            timezone=self.timezone,
            working_hours=WorkingHours(
                start_time=self.working_hours.start,
                end_time=self.working_hours.end,
                exclude_weekdays=tuple(self.exclude_days),
            ),
            appointments=[
                appointment.to_appointment(self.timezone)
                for appointment in self.appointments
            ],
        )


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: str = "UTC"  # Zone used to read dates and display results
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    attendees: List[AttendeeConfig] = Field(default_factory=list)
    calendar_file: Optional[Path] = None

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, value: str) -> str:
        return validate_timezone(value)

    @field_validator("attendees")
    @classmethod
    def validate_attendees(cls, value: List[AttendeeConfig]) -> List[AttendeeConfig]:
        """Ensure attendee names are unique."""
        seen_names: set[str] = set()
        for attendee in value:
            name_key = attendee.name.lower()
            if name_key in seen_names:
                raise ValueError(f"Duplicate attendee name detected: {attendee.name}")
            seen_names.add(name_key)
        return value

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        A relative ``calendar_file`` is resolved against the config file's
        directory.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        config = cls(**data)
        if config.calendar_file is not None and not config.calendar_file.is_absolute():
            config.calendar_file = config_path.parent / config.calendar_file
        return config

    def find_attendee(self, name: str) -> Optional[AttendeeConfig]:
        """Find an attendee by name, ignoring case."""
        for attendee in self.attendees:
            if attendee.name.lower() == name.lower():
                return attendee
        return None

    def resolve_attendees(self, names: Sequence[str]) -> List[AttendeeConfig]:
        """
        Resolve attendee names, ensuring uniqueness.

        Args:
            names: Attendee names as typed by the user

        Returns:
            Attendee configurations in the order given, duplicates removed

        Raises:
            ValueError: If no names are given or a name is unknown
        """
        if not names:
            raise ValueError("No attendees provided.")

        resolved: List[AttendeeConfig] = []
        unknown_names: List[str] = []

        for name in names:
            attendee = self.find_attendee(name)
            if attendee is None:
                unknown_names.append(name)
                continue
            if attendee not in resolved:
                resolved.append(attendee)

        if unknown_names:
            missing = ", ".join(sorted(set(unknown_names)))
            raise ValueError(
                f"Unknown attendee(s): {missing}. "
                "Ensure they exist in the configuration."
            )

        return resolved

    def build_attendees(self, names: Optional[Sequence[str]] = None) -> List[Attendee]:
        """Build domain profiles for ``names``, or for every attendee if none are given."""
        configs = self.resolve_attendees(names) if names else self.attendees
        return [attendee.to_attendee() for attendee in configs]


def _parse_datetime(value: str, timezone: str) -> DateTime:
    dt = pendulum.parse(value, tz=timezone)
    if not isinstance(dt, DateTime):
        raise ValueError(f"Could not parse datetime: {value}")
    return dt


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
