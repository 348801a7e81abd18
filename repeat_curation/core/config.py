#!/usr/bin/env python3

"""
Configuration management for repeat consensus curation.

Centralized configuration with support for file-based configuration,
environment variable overrides and the key/value header echoed at the top
of every project log.
"""

import os
import json
from dataclasses import dataclass, asdict
from typing import Optional, Dict, Any

import yaml

from .exceptions import ConfigurationError


# Project log header key -> configuration field
LOG_HEADER_FIELDS = {
    'seq_file': 'seq_file',
    'out_file': 'out_file',
    'log_file': 'log_file',
    'self_file': 'self_file',
    'align_file': 'align_file',
    'fold_file': 'fold_dir',
    'nrblast_file': 'nrblast_file',
    'repblast_file': 'repblast_file',
    'exclude_file': 'exclude_file',
    'verbose_mode': 'verbose',
}


@dataclass
class CurationConfig:
    """Centralized configuration for a curation project."""

    # Primary input and outputs
    seq_file: Optional[str] = None
    out_file: Optional[str] = None
    exclude_file: Optional[str] = None
    log_file: Optional[str] = None

    # Optional evidence sources
    self_file: Optional[str] = None
    align_file: Optional[str] = None
    repblast_file: Optional[str] = None
    nrblast_file: Optional[str] = None
    fold_dir: Optional[str] = None

    # Output settings
    line_width: int = 50

    # Runtime settings
    verbose: bool = False
    memory_limit_mb: int = 4096

    @classmethod
    def from_file(cls, config_path: str) -> 'CurationConfig':
        """Load configuration from file (JSON or YAML)."""
        if not os.path.exists(config_path):
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path, 'r') as f:
                if config_path.lower().endswith(('.yaml', '.yml')):
                    config_data = yaml.safe_load(f) or {}
                else:
                    config_data = json.load(f)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Invalid configuration file format: {e}")
        except OSError as e:
            raise ConfigurationError(f"Error loading configuration: {e}")

        if not isinstance(config_data, dict):
            raise ConfigurationError(f"Configuration file must contain a mapping: {config_path}")

        return cls.from_dict(config_data)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'CurationConfig':
        """Create configuration from dictionary."""
        # Filter out unknown keys
        known_keys = set(cls.__dataclass_fields__.keys())
        filtered_dict = {k: v for k, v in config_dict.items() if k in known_keys}

        try:
            return cls(**filtered_dict)
        except TypeError as e:
            raise ConfigurationError(f"Invalid configuration parameters: {e}")

    @classmethod
    def from_env(cls) -> 'CurationConfig':
        """Load configuration from environment variables."""
        config = cls()

        env_mappings = {
            'REPEAT_CURATION_SEQ_FILE': ('seq_file', str),
            'REPEAT_CURATION_OUT_FILE': ('out_file', str),
            'REPEAT_CURATION_EXCLUDE_FILE': ('exclude_file', str),
            'REPEAT_CURATION_LOG_FILE': ('log_file', str),
            'REPEAT_CURATION_FOLD_DIR': ('fold_dir', str),
            'REPEAT_CURATION_LINE_WIDTH': ('line_width', int),
            'REPEAT_CURATION_MEMORY_LIMIT_MB': ('memory_limit_mb', int),
            'REPEAT_CURATION_VERBOSE': ('verbose', _parse_bool),
        }

        for env_var, (field_name, converter) in env_mappings.items():
            env_value = os.getenv(env_var)
            if env_value:
                try:
                    setattr(config, field_name, converter(env_value))
                except (ValueError, TypeError) as e:
                    raise ConfigurationError(f"Invalid environment variable {env_var}: {e}")

        config.validate()
        return config

    @classmethod
    def from_log_header(cls, header: Dict[str, str]) -> 'CurationConfig':
        """Rebuild configuration from a project log header."""
        values: Dict[str, Any] = {}
        for key, field_name in LOG_HEADER_FIELDS.items():
            raw = header.get(key, '').strip()
            if field_name == 'verbose':
                values[field_name] = _parse_bool(raw) if raw else False
            elif raw:
                values[field_name] = raw
        return cls.from_dict(values)

    def to_log_header(self) -> Dict[str, str]:
        """Render the configuration as project log header values."""
        header = {}
        for key, field_name in LOG_HEADER_FIELDS.items():
            value = getattr(self, field_name)
            if field_name == 'verbose':
                header[key] = '1' if value else '0'
            else:
                header[key] = value or ''
        return header

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(self)

    def save_to_file(self, config_path: str) -> None:
        """Save configuration to file."""
        config_dict = self.to_dict()

        try:
            with open(config_path, 'w') as f:
                if config_path.lower().endswith(('.yaml', '.yml')):
                    yaml.safe_dump(config_dict, f, default_flow_style=False)
                else:
                    json.dump(config_dict, f, indent=2)
        except OSError as e:
            raise ConfigurationError(f"Error saving configuration: {e}")

    def validate(self) -> None:
        """Validate configuration parameters."""
        if self.line_width < 1:
            raise ConfigurationError("line_width must be >= 1")

        if self.memory_limit_mb < 100:
            raise ConfigurationError("memory_limit_mb must be >= 100")

    def validate_for_new_project(self) -> None:
        """Check that everything needed to start a fresh project is set."""
        self.validate()
        required = {
            'seq_file': '-i/--input',
            'out_file': '-o/--out',
            'exclude_file': '-x/--exclude',
            'log_file': '-l/--log',
        }
        for field_name, option in required.items():
            if not getattr(self, field_name):
                raise ConfigurationError(f"missing {field_name} ({option})")

    def __post_init__(self):
        """Validate configuration after initialization."""
        self.validate()


def _parse_bool(value: str) -> bool:
    return str(value).strip().lower() in ('true', '1', 'yes')


def load_config(config_path: Optional[str] = None,
                use_env: bool = True) -> CurationConfig:
    """
    Load configuration with priority: file > environment > defaults.

    Args:
        config_path: Path to configuration file (optional)
        use_env: Whether to load environment variables

    Returns:
        CurationConfig: Loaded configuration
    """
    defaults = CurationConfig()
    config = CurationConfig()

    overrides = []
    if use_env:
        overrides.append(CurationConfig.from_env())
    if config_path:
        overrides.append(CurationConfig.from_file(config_path))

    # Merge only non-default values so a file does not reset environment settings
    for override in overrides:
        for field_name in CurationConfig.__dataclass_fields__:
            value = getattr(override, field_name)
            if value != getattr(defaults, field_name):
                setattr(config, field_name, value)

    config.validate()
    return config
