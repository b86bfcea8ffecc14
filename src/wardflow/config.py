"""Ward configuration: bed capacities, default shift window and sampling steps."""

import logging
from dataclasses import dataclass, field
from datetime import time
from typing import Dict, Optional, Tuple, Union

import yaml

from wardflow.membership import cohort_family
from wardflow.periods import DEFAULT_SAMPLING_STEPS
from wardflow.records import Unit
from wardflow.shift import DEFAULT_SHIFT_END, DEFAULT_SHIFT_START, ShiftWindow

LOGGER = logging.getLogger(__name__)

DEFAULT_BED_CAPACITY = {"NICU": 20, "PICU": 10}


def _shift_time(value) -> Union[str, time]:
    # YAML 1.1 reads an unquoted 20:00 as the base-60 integer 1200
    if isinstance(value, int) and not isinstance(value, bool):
        if not 0 <= value < 24 * 60:
            raise ValueError(
                f"Invalid shift time {value!r}; write times as quoted 'HH:MM' text"
            )
        return time(value // 60, value % 60)
    return str(value)


@dataclass
class WardConfig:
    """Configuration shared by the occupancy views.

    Attributes
    ----------
    bed_capacity : Dict[str, int]
        Beds per unit, keyed by unit name ("NICU"), optionally with
        cohort-specific keys such as "NICU_INBORN"
    shift : ShiftWindow
        Shift window applied when the user has not chosen one
    sampling_steps : Tuple[Tuple[int, int], ...]
        ``(max_span_days, step_days)`` table for occupancy charts

    Examples
    --------
    A YAML file for :meth:`from_yaml` looks like::

        bed_capacity:
          NICU: 20
          NICU_INBORN: 12
          NICU_OUTBORN: 8
          PICU: 10
        shift:
          enabled: false
          start: "08:00"
          end: "20:00"
        sampling_steps:
          - [30, 1]
          - [90, 3]
    """

    bed_capacity: Dict[str, int] = field(
        default_factory=lambda: dict(DEFAULT_BED_CAPACITY)
    )
    shift: ShiftWindow = field(default_factory=ShiftWindow)
    sampling_steps: Tuple[Tuple[int, int], ...] = DEFAULT_SAMPLING_STEPS

    def __post_init__(self):
        self.bed_capacity = {
            str(key).upper(): int(value) for key, value in self.bed_capacity.items()
        }
        for key, value in self.bed_capacity.items():
            unit_name = key.replace("_INBORN", "").replace("_OUTBORN", "")
            if Unit.parse(unit_name) is None:
                raise ValueError(f"Unknown unit in bed_capacity: {key}")
            if value < 0:
                raise ValueError(f"Bed capacity for {key} must not be negative")

    def capacity_for(self, unit: Unit, cohort: Optional[str] = None) -> int:
        """Beds for a unit, using a cohort-specific entry when one is configured.

        Units without an entry have no beds (capacity 0).
        """
        family = cohort_family(cohort)
        if family in ("Inborn", "Outborn"):
            key = f"{unit.name}_{family.upper()}"
            if key in self.bed_capacity:
                return int(self.bed_capacity[key])
        return int(self.bed_capacity.get(unit.name, 0))

    def capacities(self) -> Dict[Unit, int]:
        return {unit: self.capacity_for(unit) for unit in Unit}

    @classmethod
    def from_yaml(cls, config_path: str) -> "WardConfig":
        """Load configuration from a YAML file; omitted sections keep their defaults.

        Parameters
        ----------
        config_path : str
            Path to the YAML configuration file

        Returns
        -------
        WardConfig

        Raises
        ------
        ValueError
            If the file does not contain a mapping or holds invalid values
        """
        with open(config_path, "r") as f:
            config = yaml.safe_load(f) or {}

        if not isinstance(config, dict):
            raise ValueError(f"Ward configuration must be a mapping: {config_path}")

        kwargs = {}
        if "bed_capacity" in config:
            kwargs["bed_capacity"] = dict(config["bed_capacity"])
        if "shift" in config:
            shift = config["shift"] or {}
            kwargs["shift"] = ShiftWindow(
                enabled=bool(shift.get("enabled", False)),
                start=_shift_time(shift.get("start", DEFAULT_SHIFT_START)),
                end=_shift_time(shift.get("end", DEFAULT_SHIFT_END)),
            )
        if "sampling_steps" in config:
            kwargs["sampling_steps"] = tuple(
                (int(max_span), int(step)) for max_span, step in config["sampling_steps"]
            )

        ward_config = cls(**kwargs)
        LOGGER.info(
            "Loaded ward configuration from %s (%s capacity entries)",
            config_path,
            len(ward_config.bed_capacity),
        )
        return ward_config
