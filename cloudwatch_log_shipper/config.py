"""
Shipper configuration.

Values come from, in order of precedence:
1. Explicit constructor arguments
2. ``CW_SHIPPER_*`` environment variables (``ShipperConfig.from_env``)
3. A YAML settings file (``ShipperConfig.from_yaml``)

Example settings.yaml:

```yaml
shipper:
  storage_dir: ~/.cloudwatch_log_shipper
  region: eu-west-1
  batch_size: 5000
  upload_interval_s: 60
  default_group_name: my-app
  default_stream_name: device-1234
```
"""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigurationError
from .local import DEFAULT_QUEUE_MAXSIZE
from .models import DEFAULT_GROUP_NAME, DEFAULT_STREAM_NAME
from .remote import CloudWatchConfig
from .upload import BATCH_SIZE, BATCH_WINDOW_MS, DEFAULT_MAX_ORDERING_RESTARTS

DEFAULT_STORAGE_DIR = Path.home() / ".cloudwatch_log_shipper"
ENV_PREFIX = "CW_SHIPPER_"

# PutLogEvents hard limit
MAX_BATCH_SIZE = 10000


@dataclass
class ShipperConfig:
    """Configuration for a CloudWatchLogger.

    Attributes:
        storage_dir: Directory for pending events, preferences and device ID
        region: AWS region of the CloudWatch Logs endpoint
        endpoint_url: Override endpoint URL
        profile: Named AWS credentials profile
        batch_size: Maximum events per upload call
        batch_window_ms: Maximum timestamp span of one upload call
        queue_maxsize: Maximum queued, unwritten log records
        upload_interval_s: Period of the automatic upload loop
        max_ordering_restarts: Restamp-and-restart attempts per cycle
        default_group_name: Group used until one is set explicitly
        default_stream_name: Stream used until one is set explicitly
    """

    storage_dir: Path = field(default_factory=lambda: DEFAULT_STORAGE_DIR)
    region: str | None = None
    endpoint_url: str | None = None
    profile: str | None = None
    batch_size: int = BATCH_SIZE
    batch_window_ms: int = BATCH_WINDOW_MS
    queue_maxsize: int = DEFAULT_QUEUE_MAXSIZE
    upload_interval_s: float = 60.0
    max_ordering_restarts: int = DEFAULT_MAX_ORDERING_RESTARTS
    default_group_name: str = DEFAULT_GROUP_NAME
    default_stream_name: str = DEFAULT_STREAM_NAME

    def __post_init__(self) -> None:
        self.storage_dir = Path(self.storage_dir).expanduser()
        self.validate()

    def validate(self) -> None:
        """Check value ranges.

        Raises:
            ConfigurationError: If a value is out of range
        """
        if not 1 <= self.batch_size <= MAX_BATCH_SIZE:
            raise ConfigurationError(
                "batch_size", f"must be between 1 and {MAX_BATCH_SIZE}", str(self.batch_size)
            )
        if self.batch_window_ms <= 0:
            raise ConfigurationError("batch_window_ms", "must be positive", str(self.batch_window_ms))
        if self.queue_maxsize < 1:
            raise ConfigurationError("queue_maxsize", "must be at least 1", str(self.queue_maxsize))
        if self.upload_interval_s <= 0:
            raise ConfigurationError(
                "upload_interval_s", "must be positive", str(self.upload_interval_s)
            )
        if self.max_ordering_restarts < 0:
            raise ConfigurationError(
                "max_ordering_restarts", "must not be negative", str(self.max_ordering_restarts)
            )
        if not self.default_group_name:
            raise ConfigurationError("default_group_name", "must not be empty")
        if not self.default_stream_name:
            raise ConfigurationError("default_stream_name", "must not be empty")

    def cloudwatch_config(self) -> CloudWatchConfig:
        """Connection settings for the CloudWatch Logs client."""
        return CloudWatchConfig(
            region=self.region,
            endpoint_url=self.endpoint_url,
            profile=self.profile,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ShipperConfig":
        """Build config from a mapping, converting value types.

        Unknown keys are rejected so typos don't go unnoticed.
        """
        known = {f.name: f for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, raw in data.items():
            if key not in known:
                raise ConfigurationError(key, "unknown setting")
            if raw is None:
                continue
            kwargs[key] = _convert(key, raw)
        return cls(**kwargs)

    @classmethod
    def from_env(cls, base: dict[str, Any] | None = None) -> "ShipperConfig":
        """Create config from ``CW_SHIPPER_*`` environment variables.

        Region falls back to AWS_REGION / AWS_DEFAULT_REGION.

        Args:
            base: Values used where no environment variable is set
        """
        data = dict(base or {})
        for f in fields(cls):
            value = os.environ.get(ENV_PREFIX + f.name.upper())
            if value is not None and value != "":
                data[f.name] = value

        if not data.get("region"):
            region = os.environ.get("AWS_REGION") or os.environ.get("AWS_DEFAULT_REGION")
            if region:
                data["region"] = region

        return cls.from_dict(data)

    @classmethod
    def from_yaml(cls, path: Path, with_env: bool = True) -> "ShipperConfig":
        """Load config from the ``shipper`` section of a YAML file.

        Args:
            path: Settings file
            with_env: Let environment variables override file values
        """
        path = Path(path).expanduser()
        try:
            content = yaml.safe_load(path.read_text()) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError("config_file", str(e), str(path)) from e

        if not isinstance(content, dict):
            raise ConfigurationError("config_file", "expected a mapping", str(path))
        section = content.get("shipper", {}) or {}
        if not isinstance(section, dict):
            raise ConfigurationError("shipper", "expected a mapping", str(path))

        if with_env:
            return cls.from_env(base=section)
        return cls.from_dict(section)


_INT_FIELDS = {"batch_size", "batch_window_ms", "queue_maxsize", "max_ordering_restarts"}
_FLOAT_FIELDS = {"upload_interval_s"}


def _convert(key: str, raw: Any) -> Any:
    try:
        if key in _INT_FIELDS:
            return int(raw)
        if key in _FLOAT_FIELDS:
            return float(raw)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(key, "expected a number", str(raw)) from e
    if key == "storage_dir":
        return Path(str(raw))
    return str(raw)
