"""
GovernancePolicy: typed configuration for antibeaver.

Every threshold and path is declared here with a default, and the whole
struct is passed explicitly into the Governor and the CLI. Nothing reads
process-wide mutable state.

Policy files are YAML mappings; unknown keys are ignored with a warning
and a broken file falls back to defaults rather than aborting:

    threshold_ms: 5000
    latency_window_s: 60
    tracker_capacity: 100
    db_path: ~/.openclaw/antibeaver/governance.db
"""

import os
import logging
from dataclasses import dataclass, fields, replace
from typing import Optional

import yaml

CONFIG_ENV_VAR = "ANTIBEAVER_CONFIG"

logger = logging.getLogger("Policy")


def default_db_path() -> str:
    return os.path.join(os.path.expanduser("~"), ".openclaw", "antibeaver", "governance.db")


@dataclass(frozen=True)
class GovernancePolicy:
    # --- Storage ---
    db_path: str = ""                   # Empty = default_db_path()

    # --- Buffering trigger ---
    threshold_ms: int = 5000            # Latency above this starts buffering
    latency_window_s: float = 60.0      # Trailing window for avg/max

    # --- Tracker ---
    tracker_capacity: int = 100         # Max in-memory samples

    # --- Thoughts ---
    max_content_bytes: int = 50_000     # Longer content is truncated
    default_agent: str = "main"
    default_channel: str = "cli"

    # --- Reporting ---
    history_limit: int = 10             # Synthesis events shown by `history`

    @classmethod
    def default(cls) -> "GovernancePolicy":
        return cls(db_path=default_db_path())

    @classmethod
    def load(cls, path: Optional[str] = None) -> "GovernancePolicy":
        """Load policy from YAML. Falls back to defaults on any problem.

        path defaults to $ANTIBEAVER_CONFIG; with neither set, defaults apply.
        """
        path = path or os.environ.get(CONFIG_ENV_VAR)
        defaults = cls.default()
        if not path:
            return defaults

        if not os.path.exists(path):
            logger.warning("No policy file at %s, using defaults.", path)
            return defaults

        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error("YAML parse error in policy file: %s", e)
            return defaults
        except OSError as e:
            logger.error("Failed to read policy file %s: %s", path, e)
            return defaults

        if data is None:
            return defaults
        if not isinstance(data, dict):
            logger.error("Policy file is not a valid YAML mapping.")
            return defaults

        return defaults.merge(data)

    def merge(self, data: dict) -> "GovernancePolicy":
        """Return a copy with values from data applied, coerced to field types."""
        known = {f.name: f for f in fields(self)}
        updates = {}
        for key, raw in data.items():
            if key not in known:
                logger.warning("Ignoring unknown policy key '%s'", key)
                continue
            current = getattr(self, key)
            try:
                if key == "db_path":
                    updates[key] = os.path.expanduser(str(raw)) if raw else default_db_path()
                else:
                    updates[key] = type(current)(raw)
            except (TypeError, ValueError):
                logger.error(
                    "Invalid value for %s: %r, keeping %r", key, raw, current,
                )
        return replace(self, **updates)

    def with_db_path(self, db_path: Optional[str]) -> "GovernancePolicy":
        if not db_path:
            return self
        return replace(self, db_path=db_path)

    @property
    def resolved_db_path(self) -> str:
        return self.db_path or default_db_path()

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}
