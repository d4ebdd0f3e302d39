"""Two-tier configuration loading: bundled defaults plus an optional user config."""

import hashlib
import logging
import os
import time
import urllib.parse
from importlib.resources import files
from pathlib import Path
from typing import Any, Dict, Optional

import jsonschema
import requests
import yaml

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "properties": {
        "log_level": {
            "type": "string",
            "enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        },
        "bindings": {
            "type": "object",
            "propertyNames": {"pattern": r"^[A-Za-z_][\w.]*\.[A-Za-z_]\w*$"},
            "additionalProperties": {
                "type": "string",
                "pattern": r"^[A-Za-z_][\w.]*\.[A-Za-z_]\w*$",
            },
        },
        "batch_parallelism": {"type": "boolean"},
        "batch_max_workers": {"type": ["integer", "null"], "minimum": 1},
    },
    "additionalProperties": False,
}


class ConfigLoader:
    """Handles two-tier configuration: bundled defaults + user config."""

    # Cache directory for remotely fetched configs
    CACHE_DIR = Path.home() / ".cache" / "cross-field-lib"

    def __init__(self, config_uri: Optional[str] = None):
        """
        Load the bundled default-config.yaml, then overlay config_uri if given.

        Args:
            config_uri: Optional user config. A plain or relative path,
                file:// URI, or http(s):// URI.

        Raises:
            ConfigurationError: If the user config cannot be loaded or the
                merged config does not match CONFIG_SCHEMA
        """
        default_file = files("cross_field_lib").joinpath("default-config.yaml")
        with default_file.open("r") as f:
            self.default_config = yaml.safe_load(f) or {}

        self.config_uri = config_uri
        self.cache_dir = self.CACHE_DIR

        user_config: Dict[str, Any] = {}
        if config_uri:
            user_config = self._load_config_from_uri(config_uri)

        self.config = {**self.default_config, **user_config}
        self._validate(self.config, config_uri or "default-config.yaml")
        self.config_loaded_at = time.time()

    def _validate(self, config: Dict[str, Any], source: str) -> None:
        try:
            jsonschema.validate(instance=config, schema=CONFIG_SCHEMA)
        except jsonschema.ValidationError as e:
            error_path = ".".join(str(p) for p in e.path) if e.path else "root"
            raise ConfigurationError(
                f"Invalid configuration in {source} at {error_path}: {e.message}"
            ) from e

    def _load_yaml_text(self, text: str, source: str) -> Dict[str, Any]:
        try:
            loaded = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Malformed YAML in {source}: {e}") from e

        if loaded is None:
            return {}
        if not isinstance(loaded, dict):
            raise ConfigurationError(
                f"Configuration in {source} must be a mapping, got {type(loaded).__name__}"
            )
        return loaded

    def _load_yaml_file(self, path: str) -> Dict[str, Any]:
        try:
            with open(path) as f:
                return self._load_yaml_text(f.read(), path)
        except OSError as e:
            raise ConfigurationError(f"Cannot read configuration file {path}: {e}") from e

    def _load_config_from_uri(self, uri: str) -> Dict[str, Any]:
        """
        Load config from URI (with caching for remote configs).

        Supports:
        - Plain or relative paths - ./cross-field.yaml
        - file:// - Local filesystem (absolute paths)
        - https:// / http:// - Remote, cached under CACHE_DIR
        """
        parsed = urllib.parse.urlparse(uri)

        if not parsed.scheme:
            return self._load_yaml_file(os.path.abspath(uri))

        if parsed.scheme == "file":
            return self._load_yaml_file(urllib.parse.unquote(parsed.path))

        if parsed.scheme in ("http", "https"):
            cache_key = hashlib.sha256(uri.encode()).hexdigest()
            cache_path = self.cache_dir / f"config_{cache_key}.yaml"

            if cache_path.exists():
                logger.debug(f"Using cached config for {uri}", extra={"cache_path": str(cache_path)})
                return self._load_yaml_file(str(cache_path))

            content = self._fetch_uri(uri)
            config = self._load_yaml_text(content, uri)
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            cache_path.write_text(content)
            return config

        raise ConfigurationError(f"Unsupported URI scheme: {parsed.scheme} in {uri}")

    def _fetch_uri(self, uri: str) -> str:
        """Fetch content from HTTP/HTTPS URI."""
        try:
            response = requests.get(uri, timeout=10)
            response.raise_for_status()
        except requests.RequestException as e:
            raise ConfigurationError(f"Failed to fetch config from {uri}: {e}") from e
        return response.text

    def get_config(self) -> Dict[str, Any]:
        """Get the merged configuration."""
        return self.config

    def get_bindings(self) -> Dict[str, str]:
        return dict(self.config.get("bindings") or {})

    def get_log_level(self) -> str:
        return self.config.get("log_level", "WARNING")

    def get_batch_parallelism(self) -> bool:
        return bool(self.config.get("batch_parallelism", False))

    def get_batch_max_workers(self) -> Optional[int]:
        return self.config.get("batch_max_workers")

    def get_config_age(self) -> float:
        """Seconds since the configuration was loaded."""
        return time.time() - self.config_loaded_at
