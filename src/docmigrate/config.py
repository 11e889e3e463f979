"""Settings for migration clients and stage state tracking.

Settings can be built from a dictionary, a YAML or JSON file, or environment
variables. Environment overrides are read with dataknobs_config, e.g.
``DOCMIGRATE_MIGRATION__0__SLOW_WARN_SECONDS=2.5``.

Example:
    ```yaml
    migration:
      freshness_field: "%hash%"
      slow_warn_seconds: 1.0
      slow_escalate_seconds: 5.0
      stage_collection: fulltext_stage_state
    ```

    ```python
    from docmigrate.config import MigrationSettings

    settings = MigrationSettings.from_file("migration.yaml").with_env_overrides()
    ```
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]
from dataknobs_config import ConfigurableBase
from dataknobs_config.environment import EnvironmentOverrides

from .exceptions import ConfigurationError

ENV_PREFIX = "DOCMIGRATE_"
SECTION = "migration"


@dataclass(frozen=True)
class MigrationSettings(ConfigurableBase):
    """Tunable parameters of the migration layer.

    Attributes:
        freshness_field: Document field holding the freshness marker
        slow_warn_seconds: Update latency above which timing is logged
        slow_escalate_seconds: Update latency above which timing is logged as slow
        stage_collection: Collection holding persisted index stage states
        traverse_batch_size: Default batch size for ``MigrationIterator.batches``
    """

    freshness_field: str = "%hash%"
    slow_warn_seconds: float = 1.0
    slow_escalate_seconds: float = 5.0
    stage_collection: str = "fulltext_stage_state"
    traverse_batch_size: int = 100

    def __post_init__(self):
        """Validate configuration."""
        if not self.freshness_field:
            raise ConfigurationError("freshness_field", "must be a non-empty string")
        if not self.stage_collection:
            raise ConfigurationError("stage_collection", "must be a non-empty string")
        if self.slow_warn_seconds <= 0:
            raise ConfigurationError("slow_warn_seconds", "must be positive")
        if self.slow_escalate_seconds < self.slow_warn_seconds:
            raise ConfigurationError(
                "slow_escalate_seconds", "must not be lower than slow_warn_seconds"
            )
        if self.traverse_batch_size <= 0:
            raise ConfigurationError("traverse_batch_size", "must be positive")

    @classmethod
    def from_config(cls, config: dict) -> MigrationSettings:
        """Create settings from a configuration dictionary.

        Args:
            config: Mapping of field names to values

        Returns:
            MigrationSettings instance

        Raises:
            ConfigurationError: If the dictionary contains unknown keys
        """
        known = {f.name for f in fields(cls)}
        for key in config:
            if key not in known:
                raise ConfigurationError(key, "unknown setting")
        return super().from_config(config)  # type: ignore[return-value]

    @classmethod
    def from_file(cls, path: str | Path) -> MigrationSettings:
        """Create settings from a YAML or JSON file.

        The file may either hold the settings at top level or under a
        ``migration`` section.

        Args:
            path: Path to configuration file

        Returns:
            MigrationSettings instance
        """
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(str(path), "configuration file not found")

        suffix = path.suffix.lower()
        with open(path) as f:
            if suffix in [".yaml", ".yml"]:
                data = yaml.safe_load(f)
            elif suffix == ".json":
                data = json.load(f)
            else:
                raise ConfigurationError(str(path), f"unsupported file format: {suffix}")

        data = data or {}
        if SECTION in data:
            data = data[SECTION] or {}
        return cls.from_config(data)

    @classmethod
    def from_env(cls, prefix: str = ENV_PREFIX) -> MigrationSettings:
        """Create settings from defaults plus environment overrides."""
        return cls().with_env_overrides(prefix)

    def with_env_overrides(self, prefix: str = ENV_PREFIX) -> MigrationSettings:
        """Return a copy with values taken from matching environment variables.

        Variables follow the dataknobs_config override format
        ``<PREFIX>MIGRATION__0__<FIELD>``, e.g.
        ``DOCMIGRATE_MIGRATION__0__SLOW_WARN_SECONDS=2.5``.

        Args:
            prefix: Environment variable prefix

        Returns:
            New MigrationSettings instance, or self when nothing is overridden
        """
        env = EnvironmentOverrides(prefix)
        known = {f.name: type(getattr(self, f.name)) for f in fields(self)}
        overrides = {}
        for ref, value in env.get_overrides().items():
            type_name, index, attribute = env.parse_env_reference(ref)
            if type_name != SECTION or index != 0 or not attribute:
                continue
            if attribute not in known:
                raise ConfigurationError(attribute, "unknown setting")
            if known[attribute] is str:
                value = os.environ.get(env.reference_to_env_var(ref), str(value))
            overrides[attribute] = _coerce(attribute, value, known[attribute])
        if not overrides:
            return self
        return replace(self, **overrides)

    def to_dict(self) -> dict[str, Any]:
        """Convert settings to a plain dictionary."""
        return {f.name: getattr(self, f.name) for f in fields(self)}


def _coerce(name: str, value: Any, expected: type) -> Any:
    """Coerce a parsed environment value to the setting's type."""
    if expected is int and isinstance(value, (bool, int)):
        return int(value)
    if expected is float and isinstance(value, (bool, int, float)):
        return float(value)
    if expected is str:
        return str(value)
    raise ConfigurationError(name, f"cannot parse '{value}' as {expected.__name__}")
