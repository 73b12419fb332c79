"""
Import configuration management.

Loads sheet layout, rate rules and outcome thresholds from a YAML file
and exposes them as a validated ImportSettings model.
"""

from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from labor_import.core.categories import DEFAULT_CRAFT_PREFIXES, LaborCategory

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def _decimal_from_float(v: Any) -> Any:
    # YAML hands us floats; go through str so 0.28 stays 0.28
    if isinstance(v, float):
        return str(v)
    return v


class SheetLayout(BaseModel):
    """
    Fixed-position layout of the timekeeping export.

    Row and column indexes are 0-based.
    """

    sheet_name: str = "DOW"
    min_rows: int = Field(default=9, ge=1)
    job_row: int = Field(default=3, ge=0)
    job_column: int = Field(default=4, ge=0)
    week_row: int = Field(default=4, ge=0)
    week_column: int = Field(default=4, ge=0)
    header_row: int = Field(default=8, ge=0)
    header_labels: dict[int, str] = Field(default_factory=lambda: {5: "Mon", 12: "StHours"})
    worker_id_column: int = Field(default=2, ge=0)
    worker_id_pattern: str = r"^T\d+$"
    totals_marker: str = "total"
    name_column: int = Field(default=4, ge=0)
    craft_code_column: int = Field(default=14, ge=0)
    st_hours_column: int = Field(default=12, ge=0)
    ot_hours_column: int = Field(default=13, ge=0)
    weekday_columns: dict[str, int] = Field(
        default_factory=lambda: {day: 5 + idx for idx, day in enumerate(WEEKDAYS)}
    )

    @field_validator("weekday_columns")
    @classmethod
    def check_weekdays(cls, v: dict[str, int]) -> dict[str, int]:
        unknown = set(v) - set(WEEKDAYS)
        if unknown:
            raise ValueError(f"Unknown weekday columns: {sorted(unknown)}")
        if len(v) > 7:
            raise ValueError("At most seven weekday columns are allowed")
        return v

    @model_validator(mode="after")
    def check_header_before_data(self) -> "SheetLayout":
        if self.header_row + 1 > self.min_rows:
            raise ValueError("min_rows must include the header row")
        return self


class ImportSettings(BaseModel):
    """
    Settings for one pipeline instance.

    Attributes:
        layout: Sheet layout
        burden_rate: Loading factor applied to straight-time wages
        ot_multiplier: Overtime pay multiplier
        max_daily_hours: Per-day hour cap
        chunk_size: Detail lines per persistence chunk
        error_floor: Absolute error count that must be exceeded to fail a run
        error_ratio: Error/processed ratio that must be exceeded to fail a run
        max_returned_errors: Diagnostics returned to the caller
        max_diagnostic_codes: Unrecognized craft codes kept in audit metadata
        running_average_weeks: Recent weeks with hours averaged per category
        craft_prefixes: Craft-code prefix -> category table
    """

    layout: SheetLayout = Field(default_factory=SheetLayout)
    burden_rate: Decimal = Field(default=Decimal("0.28"), ge=0)
    ot_multiplier: Decimal = Field(default=Decimal("1.5"), ge=1)
    max_daily_hours: Decimal = Field(default=Decimal("16"), gt=0)
    chunk_size: int = Field(default=100, ge=1)
    error_floor: int = Field(default=5, ge=0)
    error_ratio: Decimal = Field(default=Decimal("0.10"), ge=0, le=1)
    max_returned_errors: int = Field(default=10, ge=1)
    max_diagnostic_codes: int = Field(default=20, ge=0)
    running_average_weeks: int = Field(default=8, ge=1)
    craft_prefixes: dict[str, LaborCategory] = Field(
        default_factory=lambda: dict(DEFAULT_CRAFT_PREFIXES)
    )

    @field_validator("burden_rate", "ot_multiplier", "max_daily_hours", "error_ratio", mode="before")
    @classmethod
    def coerce_decimal(cls, v: Any) -> Any:
        return _decimal_from_float(v)

    @field_validator("craft_prefixes", mode="before")
    @classmethod
    def coerce_prefixes(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return {str(k).upper(): LaborCategory.parse(c) for k, c in v.items()}
        return v


class ImportConfigLoader:
    """
    Loads ImportSettings from a YAML configuration file.

    Expected YAML format:
    ```yaml
    import:
      burden_rate: 0.28
      chunk_size: 100
      error_floor: 5
      error_ratio: 0.10

    layout:
      sheet_name: DOW
      header_row: 8
      header_labels:
        5: Mon
        12: StHours

    craft_prefixes:
      STA: staff
      IND: indirect
      DIR: direct
    ```
    """

    SECTIONS = ("import", "layout", "craft_prefixes")

    def __init__(self, config_path: str | Path):
        """
        Initialize the config loader.

        Args:
            config_path: Path to the YAML configuration file
        """
        self.config_path = Path(config_path)
        if not self.config_path.exists():
            raise FileNotFoundError(f"Import configuration file not found: {config_path}")

    def load(self) -> ImportSettings:
        """
        Parse the YAML file into ImportSettings.

        Raises:
            ValueError: If the YAML is malformed or contains unknown sections
        """
        with open(self.config_path) as f:
            try:
                config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in {self.config_path}: {e}") from e

        if not isinstance(config, dict):
            raise ValueError("Import configuration must be a mapping")

        unknown = set(config) - set(self.SECTIONS)
        if unknown:
            raise ValueError(f"Unknown configuration sections: {sorted(unknown)}")

        values: dict[str, Any] = dict(config.get("import") or {})
        if config.get("craft_prefixes"):
            values["craft_prefixes"] = config["craft_prefixes"]

        try:
            if config.get("layout"):
                values["layout"] = SheetLayout(**config["layout"])
            return ImportSettings(**values)
        except ValueError as e:
            raise ValueError(f"Invalid import configuration in {self.config_path}: {e}") from e


def load_settings(config_path: str | Path | None = None) -> ImportSettings:
    """
    Load settings from a path, falling back to defaults when no file exists.

    Args:
        config_path: Optional YAML path; defaults to config/labor_import.yaml

    Returns:
        ImportSettings
    """
    path = Path(config_path) if config_path else Path("config/labor_import.yaml")
    if not path.exists():
        if config_path:
            raise FileNotFoundError(f"Import configuration file not found: {config_path}")
        return ImportSettings()
    return ImportConfigLoader(path).load()
