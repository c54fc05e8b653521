"""
Configuration management using Pydantic models loaded from YAML.
"""

import os
from pathlib import Path
from typing import List, Optional

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.models import DEFAULT_TIMEZONE


class DefaultsConfig(BaseModel):
    """Default settings for availability searches."""
    slot_interval_minutes: int = 30
    num_days: int = 14
    horizon_days: int = 14
    max_num_days: int = 90

    @field_validator("slot_interval_minutes", "num_days", "horizon_days", "max_num_days")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        """Ensure counts and intervals are positive."""
        if value <= 0:
            raise ValueError(f"Value must be greater than zero, got {value}")
        return value

    @model_validator(mode="after")
    def validate_window(self) -> "DefaultsConfig":
        """Ensure the default windows fit under the configured maximum."""
        if self.num_days > self.max_num_days:
            raise ValueError("num_days must not exceed max_num_days")
        if self.horizon_days > self.max_num_days:
            raise ValueError("horizon_days must not exceed max_num_days")
        return self


class SupabaseConfig(BaseModel):
    """Connection settings for the Supabase REST backend."""
    url: str = ""
    service_role_key: str = ""
    timeout_seconds: int = 30

    def is_configured(self) -> bool:
        return bool(self.url and self.service_role_key)


class BusinessAlias(BaseModel):
    """Short name for a business ID, for use on the command line."""
    name: str
    id: str


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: str = DEFAULT_TIMEZONE
    supabase: SupabaseConfig = Field(default_factory=SupabaseConfig)
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    mock_data: Optional[Path] = None
    businesses: List[BusinessAlias] = Field(default_factory=list)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Ensure the fallback zone is a known IANA name."""
        try:
            pendulum.timezone(value)
        except Exception as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @field_validator("businesses")
    @classmethod
    def validate_businesses(cls, value: List[BusinessAlias]) -> List[BusinessAlias]:
        """Ensure business aliases are unique."""
        seen_names: set[str] = set()
        for business in value:
            name_key = business.name.lower()
            if name_key in seen_names:
                raise ValueError(f"Duplicate business alias detected: {business.name}")
            seen_names.add(name_key)
        return value

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        ``SUPABASE_URL`` and ``SUPABASE_SERVICE_ROLE_KEY`` fill in the
        Supabase section where the file leaves it empty.

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

        supabase = data.get("supabase") or {}
        # Empty values in the file are filled from the environment
        if not supabase.get("url"):
            supabase["url"] = os.environ.get("SUPABASE_URL", "")
        if not supabase.get("service_role_key"):
            supabase["service_role_key"] = os.environ.get("SUPABASE_SERVICE_ROLE_KEY", "")
        data["supabase"] = supabase

        return cls(**data)

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Build a configuration from environment variables only."""
        return cls(
            supabase=SupabaseConfig(
                url=os.environ.get("SUPABASE_URL", ""),
                service_role_key=os.environ.get("SUPABASE_SERVICE_ROLE_KEY", ""),
            )
        )

    def find_business_by_name(self, name: str) -> BusinessAlias | None:
        """Find a business by its alias."""
        for business in self.businesses:
            if business.name.lower() == name.lower():
                return business
        return None

    def resolve_business(self, identifier: str) -> str:
        """
        Resolve a business alias to its ID; unknown identifiers are taken
        to be IDs already.
        """
        business = self.find_business_by_name(identifier)
        if business:
            return business.id
        return identifier


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
