"""
Configuration management using Pydantic models loaded from YAML.
"""

from pathlib import Path
from typing import List

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.models import BusinessHoursPolicy


class BusinessHoursConfig(BaseModel):
    """Opening hours and slot size."""
    open_hour: int = 9
    close_hour: int = 17
    slot_minutes: int = 30
    workdays: List[int] = Field(default_factory=lambda: [0, 1, 2, 3, 4])  # Monday-Friday

    @field_validator("open_hour", "close_hour")
    @classmethod
    def validate_hour(cls, v: int) -> int:
        """Validate hour is between 0 and 24."""
        if not 0 <= v <= 24:
            raise ValueError(f"Hour must be between 0 and 24, got {v}")
        return v

    @field_validator("slot_minutes")
    @classmethod
    def validate_slot_minutes(cls, value: int) -> int:
        """Slots must tile an hour exactly."""
        if value <= 0 or 60 % value != 0:
            raise ValueError(f"slot_minutes must divide 60, got {value}")
        return value

    @field_validator("workdays")
    @classmethod
    def validate_workdays(cls, value: List[int]) -> List[int]:
        """Ensure weekdays are in valid range and deduplicated."""
        invalid_days = [day for day in value if day not in range(7)]
        if invalid_days:
            raise ValueError(f"workdays must be between 0 and 6, got {invalid_days}")
        # Preserve order while removing duplicates
        seen: set[int] = set()
        deduped: List[int] = []
        for day in value:
            if day not in seen:
                deduped.append(day)
                seen.add(day)
        return deduped

    @model_validator(mode="after")
    def validate_hours_order(self) -> "BusinessHoursConfig":
        """Ensure the business day opens before it closes."""
        if self.close_hour <= self.open_hour:
            raise ValueError("close_hour must be later than open_hour")
        return self


class StorageConfig(BaseModel):
    """Where bookings are kept."""
    path: Path = Path("bookings.json")


class AvailabilityConfig(BaseModel):
    """Limits for availability queries."""
    default_range_days: int = 7
    max_range_days: int = 62

    @field_validator("default_range_days", "max_range_days")
    @classmethod
    def validate_days(cls, value: int) -> int:
        if value < 0:
            raise ValueError("range days must not be negative")
        return value


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: str = "UTC"
    business_hours: BusinessHoursConfig = Field(default_factory=BusinessHoursConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    availability: AvailabilityConfig = Field(default_factory=AvailabilityConfig)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Reject names pendulum cannot resolve."""
        try:
            pendulum.timezone(value)
        except Exception as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    def to_policy(self) -> BusinessHoursPolicy:
        """Build the domain policy from this configuration."""
        hours = self.business_hours
        return BusinessHoursPolicy(
            workdays=frozenset(hours.workdays),
            open_hour=hours.open_hour,
            close_hour=hours.close_hour,
            slot_minutes=hours.slot_minutes,
            timezone=self.timezone,
        )

    def resolve_storage_path(self, base_dir: Path) -> Path:
        """Resolve a relative storage path against the config file's directory."""
        if self.storage.path.is_absolute():
            return self.storage.path
        return base_dir / self.storage.path

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

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

        return cls(**data)


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of slotbook/)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
