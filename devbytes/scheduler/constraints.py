"""Host-side evaluation of schedule constraints."""

import threading
from typing import Protocol

import structlog

from devbytes.scheduler.models import ScheduleConstraints


logger = structlog.get_logger()


class ConstraintChecker(Protocol):
    """Reports whether a constraint set is satisfied right now."""

    def is_satisfied(self, constraints: ScheduleConstraints) -> bool:
        """Check the constraint set against current host conditions."""
        ...


class AlwaysSatisfied:
    """Checker for hosts without device conditions (servers, CLIs)."""

    def is_satisfied(self, constraints: ScheduleConstraints) -> bool:  # noqa: ARG002
        """Always True."""
        return True


class DeviceConditions:
    """Current device conditions, updated by the host as they change.

    Thread-safe: the host may call ``update`` from any thread while the
    scheduler thread evaluates constraints.
    """

    def __init__(
        self,
        network_unmetered: bool = False,
        battery_not_low: bool = True,
        charging: bool = False,
        device_idle: bool = False,
    ) -> None:
        self._lock = threading.Lock()
        self._network_unmetered = network_unmetered
        self._battery_not_low = battery_not_low
        self._charging = charging
        self._device_idle = device_idle

    def update(
        self,
        *,
        network_unmetered: bool | None = None,
        battery_not_low: bool | None = None,
        charging: bool | None = None,
        device_idle: bool | None = None,
    ) -> None:
        """Update any subset of the reported conditions."""
        with self._lock:
            if network_unmetered is not None:
                self._network_unmetered = network_unmetered
            if battery_not_low is not None:
                self._battery_not_low = battery_not_low
            if charging is not None:
                self._charging = charging
            if device_idle is not None:
                self._device_idle = device_idle

    def is_satisfied(self, constraints: ScheduleConstraints) -> bool:
        """Check every required flag against the reported conditions."""
        with self._lock:
            unmet = [
                name
                for name, required, met in (
                    (
                        "requires_unmetered_network",
                        constraints.requires_unmetered_network,
                        self._network_unmetered,
                    ),
                    (
                        "requires_battery_not_low",
                        constraints.requires_battery_not_low,
                        self._battery_not_low,
                    ),
                    ("requires_charging", constraints.requires_charging, self._charging),
                    (
                        "requires_device_idle",
                        constraints.requires_device_idle,
                        self._device_idle,
                    ),
                )
                if required and not met
            ]
        if unmet:
            logger.debug("constraints_unmet", component="scheduler", unmet=unmet)
        return not unmet
