"""
Application settings and configuration management.
"""

import os
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any, Optional
import yaml
from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class VarianceThresholds:
    """Severity cut points, in percent of budget."""
    critical: float = 15.0
    warning: float = 10.0
    favorable: float = -5.0

    @classmethod
    def from_mapping(cls, values: Optional[Dict[str, Any]]) -> "VarianceThresholds":
        """Build thresholds from a partial mapping, keeping defaults for missing keys."""
        if not values:
            return cls()
        defaults = cls()
        return cls(
            critical=float(values.get("critical", defaults.critical)),
            warning=float(values.get("warning", defaults.warning)),
            favorable=float(values.get("favorable", defaults.favorable)),
        )

    def validate(self) -> None:
        """Check that the cut points are ordered sensibly."""
        if self.warning > self.critical:
            raise ValueError(
                f"Warning threshold ({self.warning}) must not exceed critical threshold ({self.critical})"
            )
        if self.favorable > 0:
            raise ValueError(f"Favorable threshold must be <= 0, got {self.favorable}")


DEFAULT_THRESHOLDS = VarianceThresholds()


class Settings:
    """Application settings and configuration."""

    def __init__(self, config_dir: Optional[str] = None):
        self.project_root = Path(__file__).parent.parent.parent.parent
        env_dir = os.getenv("VARIANCE_CONFIG_DIR")
        if config_dir:
            self.config_dir = Path(config_dir)
        elif env_dir:
            self.config_dir = Path(env_dir)
        else:
            self.config_dir = self.project_root / "config"
        self.logger = logging.getLogger(__name__)

        self.engine_config: Dict[str, Any] = {}

        self._load_config()
        self._apply_env_overrides()
        self._validate_config()

    def _load_config(self):
        """Load configuration from YAML files with error handling."""
        self.engine_config = self._load_yaml_config(
            self.config_dir / "engine.yaml",
            self._default_engine_config,
            "engine configuration"
        )

    def _load_yaml_config(self, file_path: Path, default_func, config_name: str) -> Dict[str, Any]:
        """Load a YAML config file, merged over defaults."""
        defaults = default_func()
        try:
            if file_path.exists():
                with open(file_path, 'r', encoding='utf-8') as f:
                    config = yaml.safe_load(f)
                if config is None:
                    self.logger.warning(f"Empty {config_name} file, using defaults")
                    return defaults
                if not isinstance(config, dict):
                    self.logger.error(f"{config_name} must be a mapping, using defaults")
                    return defaults
                self.logger.info(f"Loaded {config_name} from {file_path}")
                return self._merge(defaults, config)
            else:
                self.logger.warning(f"{config_name} file not found at {file_path}, using defaults")
                return defaults
        except yaml.YAMLError as e:
            self.logger.error(f"Error parsing {config_name} YAML: {e}, using defaults")
            return defaults
        except OSError as e:
            self.logger.error(f"Error loading {config_name}: {e}, using defaults")
            return defaults

    @staticmethod
    def _merge(defaults: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
        """Merge one level of nested sections over defaults."""
        merged = {key: dict(value) if isinstance(value, dict) else value
                  for key, value in defaults.items()}
        for key, value in overrides.items():
            if isinstance(value, dict) and isinstance(merged.get(key), dict):
                merged[key].update(value)
            else:
                merged[key] = value
        return merged

    def _apply_env_overrides(self):
        """Environment variables win over file values."""
        env_map = {
            "VARIANCE_CRITICAL_THRESHOLD": ("thresholds", "critical"),
            "VARIANCE_WARNING_THRESHOLD": ("thresholds", "warning"),
            "VARIANCE_FAVORABLE_THRESHOLD": ("thresholds", "favorable"),
            "VARIANCE_CACHE_TTL": ("cache", "ttl_seconds"),
        }
        for env_var, (section, key) in env_map.items():
            raw = os.getenv(env_var)
            if raw is None:
                continue
            try:
                self.engine_config[section][key] = float(raw)
            except ValueError:
                raise ValueError(f"{env_var} must be numeric, got {raw!r}") from None

    def _validate_config(self):
        """Validate loaded configuration."""
        try:
            self._validate_thresholds()
            self._validate_cache()
            self.logger.debug("Configuration validation completed successfully")
        except Exception as e:
            self.logger.error(f"Configuration validation failed: {e}")
            raise

    def _validate_thresholds(self):
        """Validate thresholds configuration."""
        thresholds = self.engine_config.get("thresholds", {})
        for key in ("critical", "warning", "favorable"):
            if key not in thresholds:
                raise ValueError(f"Missing required threshold key: {key}")
            if not isinstance(thresholds[key], (int, float)) or isinstance(thresholds[key], bool):
                raise ValueError(f"Threshold {key} must be numeric")
        self.thresholds.validate()

    def _validate_cache(self):
        """Validate cache configuration."""
        ttl = self.engine_config.get("cache", {}).get("ttl_seconds")
        if not isinstance(ttl, (int, float)) or ttl <= 0:
            raise ValueError(f"cache.ttl_seconds must be a positive number, got {ttl!r}")

    def _default_engine_config(self) -> Dict[str, Any]:
        """Default engine configuration."""
        return {
            "thresholds": {
                "critical": DEFAULT_THRESHOLDS.critical,
                "warning": DEFAULT_THRESHOLDS.warning,
                "favorable": DEFAULT_THRESHOLDS.favorable,
            },
            "cache": {
                "ttl_seconds": 3600,
                "cleanup_interval_seconds": 300,
            },
            "insights": {
                "aggregate_min_impact": 1000.0,
                "aggregate_critical_impact": 50000.0,
                "systemic_critical_count": 3,
                "top_accounts": 3,
            },
            "batch": {
                "max_workers": 4,
            },
            "logging": {
                "level": "INFO",
                "file": None,
                "data_quality_file": None,
            },
        }

    @property
    def thresholds(self) -> VarianceThresholds:
        """Severity thresholds injected into the engine."""
        return VarianceThresholds.from_mapping(self.engine_config.get("thresholds"))

    @property
    def cache_ttl(self) -> int:
        """Default cache entry lifetime in seconds."""
        return int(self.engine_config["cache"]["ttl_seconds"])

    @property
    def cache_cleanup_interval(self) -> int:
        """Seconds between opportunistic purges of expired cache entries."""
        return int(self.engine_config["cache"].get("cleanup_interval_seconds", 300))

    @property
    def insight_settings(self) -> Dict[str, Any]:
        """Aggregate and systemic insight cut points."""
        return dict(self.engine_config.get("insights", {}))

    @property
    def max_workers(self) -> int:
        """Default parallelism for batch analysis."""
        return int(self.engine_config.get("batch", {}).get("max_workers", 4))

    @property
    def log_level(self) -> str:
        """Logging level; $LOG_LEVEL wins over the file."""
        return os.getenv("LOG_LEVEL") or str(self.engine_config.get("logging", {}).get("level") or "INFO")

    @property
    def log_file(self) -> Optional[str]:
        """Log file for all records, if any; $LOG_FILE wins over the file."""
        return os.getenv("LOG_FILE") or self.engine_config.get("logging", {}).get("file")

    @property
    def data_quality_log(self) -> Optional[str]:
        """Separate log file for data-quality warnings, if any."""
        return self.engine_config.get("logging", {}).get("data_quality_file")
