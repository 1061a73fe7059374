"""Configuration management for the streaming client."""

import os
from typing import Any

import yaml
from dotenv import load_dotenv

from .logging_utils import configure_logging

DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(__file__), "config.yaml")


class Configuration:
    """Manages configuration and environment variables for the streaming client."""

    def __init__(self, config_path: str | None = None) -> None:
        """Initialize configuration from YAML and environment variables.

        Args:
            config_path: YAML file to load instead of the packaged config.yaml.
        """
        self.load_env()  # Load .env for API keys
        self._config_path = config_path or DEFAULT_CONFIG_PATH
        self._config = self._load_yaml_config()

    @staticmethod
    def load_env() -> None:
        """Load environment variables from .env file."""
        load_dotenv()

    def _load_yaml_config(self) -> dict[str, Any]:
        """Load configuration from YAML file."""
        with open(self._config_path) as file:
            config = yaml.safe_load(file)
            if not isinstance(config, dict):
                raise ValueError(
                    f"Config file must be YAML dict, got {type(config)}"
                )
            return config

    @property
    def api_key(self) -> str:
        """Get the Anthropic API key.

        Returns:
            The API key as a string.

        Raises:
            ValueError: If the API key is not found in environment variables.
        """
        api_key = os.getenv("ANTHROPIC_API_KEY")
        if not api_key:
            raise ValueError(
                "API key 'ANTHROPIC_API_KEY' not found in environment variables"
            )
        return api_key

    def get_config_dict(self) -> dict[str, Any]:
        """Get the full configuration dictionary."""
        return self._config

    def get_client_config(self) -> dict[str, Any]:
        """Get HTTP client configuration from YAML.

        Returns:
            Client configuration dictionary with validated values.

        Raises:
            ValueError: If required client parameters are missing or invalid.
        """
        client_config = self._config.get("client", {})

        required_keys = [
            "base_url", "messages_path", "anthropic_version",
            "connect_timeout", "read_timeout", "write_timeout", "pool_timeout",
        ]
        for key in required_keys:
            if key not in client_config:
                raise ValueError(
                    f"client.{key} must be explicitly configured in config.yaml"
                )

        for key in ("connect_timeout", "read_timeout", "write_timeout", "pool_timeout"):
            value = client_config[key]
            if not isinstance(value, int | float) or value <= 0:
                raise ValueError(f"client.{key} must be positive")

        # Create new dictionary without mutating the original
        result = {**client_config}
        base_url_override = os.getenv("ANTHROPIC_BASE_URL")
        if base_url_override:
            result["base_url"] = base_url_override

        return result

    def get_streaming_config(self) -> dict[str, Any]:
        """Get streaming configuration from YAML.

        Raises:
            ValueError: If required streaming parameters are missing or invalid.
        """
        streaming_config = self._config.get("streaming", {})

        for key in ("filter_rate_limit", "log_events"):
            if key not in streaming_config:
                raise ValueError(
                    f"streaming.{key} must be explicitly configured in config.yaml"
                )
            if not isinstance(streaming_config[key], bool):
                raise ValueError(f"streaming.{key} must be a boolean")

        max_buffer_bytes = streaming_config.get("max_buffer_bytes")
        if max_buffer_bytes is not None and (
            not isinstance(max_buffer_bytes, int) or max_buffer_bytes < 1
        ):
            raise ValueError("streaming.max_buffer_bytes must be a positive integer")

        return streaming_config

    def get_logging_config(self) -> dict[str, Any]:
        """Get logging configuration from YAML.

        Returns:
            Logging configuration dictionary.
        """
        return self._config.get("logging", {})

    def apply_logging_config(self) -> None:
        """Reconfigure package logging from the `logging` section."""
        logging_config = self.get_logging_config()
        configure_logging(
            level=logging_config.get("level", "INFO"),
            renderer=logging_config.get("renderer", "console"),
        )
