#!/usr/bin/env python3

import os
import json
import tomllib
from pathlib import Path

import logging
import sys

import yaml

from .exit_codes import ConfigError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s: %(message)s",
    handlers=[
        logging.StreamHandler(sys.stderr) # Default to stderr
    ]
)
logger = logging.getLogger("zgraph")


def get_config_path():
    """Get the path to the configuration file.

    Checks in order:
    1. ZGRAPH_CONFIG environment variable
    2. ~/.zgraph/ directory
    """
    # Check for environment variable override
    if 'ZGRAPH_CONFIG' in os.environ:
        path = Path(os.environ['ZGRAPH_CONFIG'])
        if path.exists():
            return path

    zgraph_dir = Path.home() / '.zgraph'
    for filename in ['config.json', 'config.toml', 'config.yaml', 'config.yml']:
        path = zgraph_dir / filename
        if path.exists():
            return path

    # If no file exists, return default path
    return zgraph_dir / 'config.json'


def read_structured_file(path):
    """Read a JSON, TOML or YAML file into Python data, by suffix."""
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == '.toml':
        with open(path, 'rb') as f:
            return tomllib.load(f)
    if suffix in ['.yaml', '.yml']:
        with open(path, 'r') as f:
            return yaml.safe_load(f)
    # Default to JSON format
    with open(path, 'r') as f:
        return json.load(f)


def load_config():
    """Load configuration from file.

    Raises:
        ConfigError: If the configuration file exists but cannot be read
    """
    config_path = get_config_path()

    # Start with default config
    config = get_default_config()

    # Load from file if it exists
    if config_path.exists():
        try:
            file_config = read_structured_file(config_path)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigError(f"Error loading config from {config_path}: {e}") from e

        if file_config:
            if not isinstance(file_config, dict):
                raise ConfigError(f"Config file {config_path} must contain a mapping")
            # Merge file config with defaults
            config = merge_configs(config, file_config)

    # Apply environment variable overrides
    config = apply_env_overrides(config)

    return config


def get_default_config():
    """Get default configuration."""
    return {
        "resolver": {
            "max_workers": 4,          # Threads for discovery and edge authorization
        },
        "discovery": {
            "project_files": ["project.yaml", "project.yml", "project.json", "project.toml"],
            "skip_directories": [".git", "node_modules", "__pycache__", ".venv", "venv", "build", "dist"],
        },
        "logging": {
            "level": "INFO",
            "format": "%(levelname)s: %(message)s"
        },
    }


def configure_logging(config):
    """Apply the logging section of a configuration to the zgraph logger."""
    section = config.get("logging", {})
    level_name = str(section.get("level", "INFO")).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        raise ConfigError(f"Unknown logging level: {level_name}")
    logger.setLevel(level)
    formatter = logging.Formatter(section.get("format", "%(levelname)s: %(message)s"))
    for handler in logging.getLogger().handlers:
        handler.setFormatter(formatter)


def merge_configs(base_config, override_config):
    """
    Recursively merge two configuration dictionaries.

    Args:
        base_config (dict): Base configuration
        override_config (dict): Configuration to merge/override with

    Returns:
        dict: Merged configuration
    """
    merged = base_config.copy()

    for key, value in override_config.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            # Recursively merge nested dictionaries
            merged[key] = merge_configs(merged[key], value)
        else:
            # Override or add new key
            merged[key] = value

    return merged


def apply_env_overrides(config):
    """
    Apply environment variable overrides to configuration.
    Environment variables follow the pattern: ZGRAPH_SECTION_KEY
    For example: ZGRAPH_RESOLVER_MAX_WORKERS=8
    """
    env_prefix = "ZGRAPH_"

    for env_key, value in os.environ.items():
        if not env_key.startswith(env_prefix) or env_key == "ZGRAPH_CONFIG":
            continue

        key_parts = env_key[len(env_prefix):].lower().split('_')

        # Convert value
        if value.lower() in ('true', 'yes', 'on'):
            typed_value = True
        elif value.lower() in ('false', 'no', 'off'):
            typed_value = False
        elif value.isdigit():
            typed_value = int(value)
        else:
            typed_value = value

        current_level = config
        i = 0
        while i < len(key_parts):
            # Find the longest key in current_level that is a prefix of the remaining key_parts
            best_match_len = 0
            matched_key = None

            for config_key in current_level.keys():
                config_key_parts_from_key = config_key.split('_')
                if key_parts[i : i + len(config_key_parts_from_key)] == config_key_parts_from_key:
                    if len(config_key_parts_from_key) > best_match_len:
                        best_match_len = len(config_key_parts_from_key)
                        matched_key = config_key

            if matched_key:
                # If we are at the end of the env var, we have found the key to set
                if i + best_match_len == len(key_parts):
                    current_level[matched_key] = typed_value
                    break

                # Otherwise, we descend into the dictionary
                if isinstance(current_level[matched_key], dict):
                    current_level = current_level[matched_key]
                    i += best_match_len
                else:
                    # Path conflict, e.g., env var is longer but we found a non-dict value
                    break
            else:
                # No match found
                break

    return config
