# =============================================================================
# Double Vision - Centralized Configuration
# =============================================================================
# Provides a single Config dataclass containing all tunable parameters for
# the device connection, the monitoring scheduler, the AI backends and the
# device simulator. Parameters are overridable via environment variables with
# the DOUBLE_VISION_ prefix (e.g., DOUBLE_VISION_MONITORING_INTERVAL_MS=2000).
# =============================================================================

import os
from dataclasses import dataclass, field
from typing import Optional

from shared.schemas import BackendConfig, ProviderKind

ENV_PREFIX = "DOUBLE_VISION_"

# Legacy provider names accepted from the environment
_PROVIDER_ALIASES = {
    "github-copilot": ProviderKind.LOCAL,
    "copilot": ProviderKind.LOCAL,
    "default": ProviderKind.LOCAL,
}


def resolve_provider(name: str) -> ProviderKind:
    """
    Convert a provider name from configuration into a ProviderKind.

    Args:
        name: One of "local", "openai", "anthropic", "google", or a legacy
              alias such as "github-copilot".

    Returns:
        The matching ProviderKind.

    Raises:
        ValueError: If the name is not a known provider.
    """
    key = name.strip().lower()
    if key in _PROVIDER_ALIASES:
        return _PROVIDER_ALIASES[key]
    return ProviderKind(key)


@dataclass
class Config:
    """
    Centralized configuration for the Double Vision monitoring pipeline.

    All fields can be overridden via environment variables prefixed with
    DOUBLE_VISION_.
    """

    # -- Camera / Device --
    camera_host: str = "192.168.1.100"
    camera_port: int = 80
    stream_path: str = "/ws"
    probe_timeout_seconds: float = 5.0
    capture_timeout_seconds: float = 10.0
    command_timeout_seconds: float = 5.0
    default_width: int = 320  # ESP32-CAM QVGA
    default_height: int = 240

    # -- Monitoring --
    monitoring_interval_ms: int = 5000
    debounce_ms: int = 2000
    history_capacity: int = 10
    change_detection_threshold: float = 0.0  # 0 disables pixel-diff skipping

    # -- AI Backend --
    ai_provider: str = "local"
    ai_api_key: str = ""
    ai_model: str = ""
    ai_timeout_seconds: float = 60.0
    ai_max_tokens: int = 500

    # -- Device Simulator --
    simulator_host: str = "127.0.0.1"
    simulator_port: int = 8080
    simulator_fps: float = 2.0

    # -- Derived (computed post-init) --
    camera_url: str = field(init=False)

    def __post_init__(self):
        """Apply environment variable overrides and compute derived fields."""
        self._apply_env_overrides()
        self.camera_url = f"http://{self.camera_host}:{self.camera_port}"

    def _apply_env_overrides(self):
        """
        Override config fields from environment variables.

        Looks for DOUBLE_VISION_<FIELD_NAME_UPPERCASE> environment variables
        and applies them with appropriate type conversion.
        """
        field_types = {
            "camera_host": str,
            "camera_port": int,
            "stream_path": str,
            "probe_timeout_seconds": float,
            "capture_timeout_seconds": float,
            "command_timeout_seconds": float,
            "default_width": int,
            "default_height": int,
            "monitoring_interval_ms": int,
            "debounce_ms": int,
            "history_capacity": int,
            "change_detection_threshold": float,
            "ai_provider": str,
            "ai_api_key": str,
            "ai_model": str,
            "ai_timeout_seconds": float,
            "ai_max_tokens": int,
            "simulator_host": str,
            "simulator_port": int,
            "simulator_fps": float,
        }
        for field_name, field_type in field_types.items():
            env_key = f"{ENV_PREFIX}{field_name.upper()}"
            env_value = os.environ.get(env_key)
            if env_value is not None:
                setattr(self, field_name, field_type(env_value))

    def backend_config(self) -> BackendConfig:
        """
        Build the immutable per-session backend selection.

        Returns:
            BackendConfig for the configured provider. Empty key and model
            strings are treated as unset.
        """
        return BackendConfig(
            provider_kind=resolve_provider(self.ai_provider),
            api_key=self.ai_api_key or None,
            model=self.ai_model or None,
            timeout_seconds=self.ai_timeout_seconds,
            max_tokens=self.ai_max_tokens,
        )


# ---------------------------------------------------------------------------
# Singleton accessor
# ---------------------------------------------------------------------------
_config_instance: Optional[Config] = None


def get_config() -> Config:
    """
    Return the singleton Config instance, creating it on first call.

    Returns:
        Config: The global configuration object.
    """
    global _config_instance
    if _config_instance is None:
        _config_instance = Config()
    return _config_instance
