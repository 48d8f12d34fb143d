"""Configuration management for Cadence components."""

from dataclasses import asdict, dataclass, fields, replace
from typing import Dict, Any, Optional
import copy
import json
import os
from pathlib import Path

from ..logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class TunerProfile:
    """Construction-time tunables of the pitch-tracking engine.

    Values are trusted; an out-of-range value is a caller error, not
    something the engine checks at runtime.
    """

    strict_threshold_db: float = -38.0  # Level required to acquire a note
    relaxed_threshold_db: float = -44.0  # Level required to hold a locked note
    frequency_smoothing_alpha: float = 0.3
    cents_smoothing_alpha: float = 0.35
    stability_window_size: int = 2  # Frequency readings that must agree
    frequency_stability_tolerance_hz: float = 8.0
    amplitude_window_size: int = 2
    max_amplitude_relative_variance: float = 0.35
    minimum_sustain_duration: float = 0.030  # Seconds
    in_tune_threshold_cents: float = 3.0
    min_frequency_hz: float = 65.0  # ~C2
    max_frequency_hz: float = 2000.0  # ~B6
    # Clear note/frequency when the signal drops (False keeps the last reading on screen)
    clear_display_on_reject: bool = True
    reset_frequency_window_on_amplitude_instability: bool = False
    use_flats: bool = False

    def with_overrides(self, **overrides: Any) -> "TunerProfile":
        """Return a copy with the given fields replaced."""
        return replace(self, **overrides)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def field_names(cls):
        return [f.name for f in fields(cls)]


# Named presets matching the tuning profiles players can pick from
PROFILES: Dict[str, TunerProfile] = {
    "default": TunerProfile(),
    "responsive": TunerProfile(
        frequency_smoothing_alpha=0.7,
        cents_smoothing_alpha=0.75,
        stability_window_size=1,
        frequency_stability_tolerance_hz=10.0,
        amplitude_window_size=2,
        max_amplitude_relative_variance=0.4,
        minimum_sustain_duration=0.015,
    ),
    "smooth": TunerProfile(
        frequency_smoothing_alpha=0.15,
        cents_smoothing_alpha=0.2,
        stability_window_size=4,
        frequency_stability_tolerance_hz=10.0,
        amplitude_window_size=4,
        max_amplitude_relative_variance=0.3,
        reset_frequency_window_on_amplitude_instability=True,
    ),
    "legacy": TunerProfile(
        strict_threshold_db=-30.0,
        relaxed_threshold_db=-36.0,
        frequency_smoothing_alpha=0.15,
        cents_smoothing_alpha=0.2,
        stability_window_size=4,
        frequency_stability_tolerance_hz=10.0,
        amplitude_window_size=1,
        minimum_sustain_duration=0.0,
        min_frequency_hz=20.0,
        max_frequency_hz=5000.0,
        clear_display_on_reject=False,
    ),
}

DEFAULT_PROFILE = "default"


class ConfigManager:
    """Configuration manager for Cadence components."""

    def __init__(self, config_dir: Optional[str] = None):
        """Initialize the configuration manager.

        Args:
            config_dir: Directory to store configuration files, or None to use default
        """
        if config_dir is None:
            home = os.path.expanduser("~")
            config_dir = os.path.join(home, ".config", "cadence")

        self.config_dir = Path(config_dir)
        self.config_dir.mkdir(parents=True, exist_ok=True)

        self.default_configs = {
            "tuner": {"profile": DEFAULT_PROFILE, "overrides": {}},
            "audio_input": {
                "sample_rate": 44100,
                "frames_per_buffer": 1024,
                "channels": 1,
            },
            "pitch_estimator": {
                "method": "yin",
                "tolerance": 0.8,
                "min_confidence": 0.5,
            },
        }

        self.configs = {}
        for config_name, default_config in self.default_configs.items():
            self.configs[config_name] = self.load_config(config_name, default_config)

    def load_config(self, name: str, default_config: Dict[str, Any]) -> Dict[str, Any]:
        """Load configuration from file or create default.

        Args:
            name: Configuration name
            default_config: Default configuration to use if file doesn't exist

        Returns:
            Configuration dictionary
        """
        config_file = self.config_dir / f"{name}.json"

        if config_file.exists():
            try:
                with open(config_file, "r") as f:
                    config = json.load(f)
                logger.info(f"Loaded configuration from {config_file}")

                for key, value in default_config.items():
                    if key not in config:
                        config[key] = value

                return config
            except (OSError, ValueError) as e:
                logger.error(f"Error loading configuration from {config_file}: {e}")
                return copy.deepcopy(default_config)
        else:
            config = copy.deepcopy(default_config)
            self.save_config(name, config)
            return config

    def save_config(self, name: str, config: Dict[str, Any]) -> bool:
        """Save configuration to file.

        Returns:
            True if saved successfully, False otherwise
        """
        config_file = self.config_dir / f"{name}.json"

        try:
            with open(config_file, "w") as f:
                json.dump(config, f, indent=2)
            logger.info(f"Saved configuration to {config_file}")
            return True
        except (OSError, TypeError) as e:
            logger.error(f"Error saving configuration to {config_file}: {e}")
            return False

    def get_config(self, name: str) -> Dict[str, Any]:
        """Get a copy of the configuration by name."""
        return copy.deepcopy(self.configs.get(name, {}))

    def update_config(self, name: str, updates: Dict[str, Any]) -> bool:
        """Update configuration and save to file.

        Returns:
            True if updated and saved successfully, False otherwise
        """
        if name not in self.configs:
            logger.error(f"Unknown configuration: {name}")
            return False

        self.configs[name].update(updates)
        return self.save_config(name, self.configs[name])

    def reset_config(self, name: str) -> bool:
        """Reset configuration to default.

        Returns:
            True if reset successfully, False otherwise
        """
        if name not in self.default_configs:
            logger.error(f"Unknown configuration: {name}")
            return False

        self.configs[name] = copy.deepcopy(self.default_configs[name])
        return self.save_config(name, self.configs[name])

    def get_profile(self, name: Optional[str] = None) -> TunerProfile:
        """Build the tuner profile from a preset plus the stored overrides.

        Args:
            name: Preset name, or None to use the one stored in the tuner config

        Raises:
            ValueError: If the preset does not exist
        """
        tuner_config = self.configs["tuner"]
        name = name or tuner_config.get("profile", DEFAULT_PROFILE)
        if name not in PROFILES:
            raise ValueError(
                f"Unknown tuner profile: {name} (available: {', '.join(sorted(PROFILES))})"
            )

        known = set(TunerProfile.field_names())
        overrides = {}
        for key, value in tuner_config.get("overrides", {}).items():
            if key in known:
                overrides[key] = value
            else:
                logger.warning(f"Ignoring unknown tuner setting: {key}")

        return PROFILES[name].with_overrides(**overrides)
