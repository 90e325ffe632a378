"""
SessionPay configuration.

Loaded from YAML:

    session_timeout_seconds: 172800
    require_active_node: true
    state_path: .sessionpay/state.json
    journal_path: .sessionpay/journal
    operator_key_path: .sessionpay/operator.pem
    log_level: INFO

Relative paths in a config file are resolved against the file's directory.
"""

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

import yaml

from sessionpay.core.exceptions import ValidationError
from sessionpay.core.models import SESSION_TIMEOUT


_PATH_KEYS = ("state_path", "journal_path", "operator_key_path")


@dataclass
class SessionPayConfig:
    session_timeout_seconds: int  = SESSION_TIMEOUT
    require_active_node:     bool = True
    state_path:              Path = Path(".sessionpay/state.json")
    journal_path:            Path = Path(".sessionpay/journal")
    operator_key_path:       Path = Path(".sessionpay/operator.pem")
    log_level:               str  = "INFO"

    def __post_init__(self):
        for key in _PATH_KEYS:
            setattr(self, key, Path(getattr(self, key)))
        if not isinstance(self.session_timeout_seconds, int) or self.session_timeout_seconds < 0:
            raise ValidationError(
                "session_timeout_seconds must be a non-negative integer",
                {"value": self.session_timeout_seconds},
            )
        self.log_level = str(self.log_level).upper()

    @classmethod
    def from_dict(cls, data: dict, base_dir: Optional[Path] = None) -> "SessionPayConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValidationError("Unknown configuration keys", {"keys": unknown})
        values = dict(data)
        if base_dir is not None:
            for key in _PATH_KEYS:
                if key in values and not Path(values[key]).is_absolute():
                    values[key] = Path(base_dir) / values[key]
        return cls(**values)

    @classmethod
    def from_yaml(cls, config_file: Path) -> "SessionPayConfig":
        """Load configuration from a YAML file."""
        config_file = Path(config_file)
        with open(config_file, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValidationError(
                "Configuration file must contain a mapping", {"path": str(config_file)}
            )
        return cls.from_dict(data, base_dir=config_file.parent)

    def to_dict(self) -> dict:
        return {
            f.name: str(getattr(self, f.name)) if f.name in _PATH_KEYS else getattr(self, f.name)
            for f in fields(self)
        }
