"""Data models for refresh scheduling."""

import json
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ConflictPolicy(str, Enum):
    """What to do when a schedule name is registered again.

    - KEEP: Leave the existing series untouched
    - REPLACE: Cancel the existing series and install the new one
    """

    KEEP = "KEEP"
    REPLACE = "REPLACE"


class ScheduleConstraints(BaseModel):
    """Conditions the host must report as met before a scheduled run fires.

    The flag list is host policy; the scheduler only asks a
    ``ConstraintChecker`` whether the set is currently satisfied.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    requires_unmetered_network: bool = Field(
        default=False, description="Run only on an unmetered network"
    )
    requires_battery_not_low: bool = Field(
        default=False, description="Run only when the battery is not low"
    )
    requires_charging: bool = Field(default=False, description="Run only while charging")
    requires_device_idle: bool = Field(
        default=False, description="Run only while the device is idle"
    )

    def to_json(self) -> str:
        """Serialize for the schedule table."""
        return json.dumps(self.model_dump(), sort_keys=True)

    @classmethod
    def from_json(cls, raw: str) -> "ScheduleConstraints":
        """Deserialize from the schedule table."""
        return cls.model_validate(json.loads(raw or "{}"))

    @property
    def required(self) -> list[str]:
        """Names of the flags that are switched on."""
        return [name for name, value in self.model_dump().items() if value]
