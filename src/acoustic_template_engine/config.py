"""Configuration utilities for the acoustic template engine.

This module centralizes engine defaults and supports loading a unified
global configuration file covering logging, audio capture, template files
and the detection rule table.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

import yaml

from .errors import ConfigError
from .history import DEFAULT_HISTORY_DEPTH
from .models import DetectionRule
from .rules import DEFAULT_RULES, load_rules_from_yaml, parse_rule
from .scanner import DEFAULT_HOP
from .templates import TemplateBank

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_RATE = 48000
DEFAULT_CHANNELS = 2
DEFAULT_CHUNK_SIZE = 480

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATEFMT = "%H:%M:%S"


def min_history_depth(rules: List[DetectionRule]) -> int:
    """Smallest history depth that covers every position the rules read."""
    deepest = 0
    for rule in rules:
        for pos in rule.positions():
            deepest = max(deepest, pos.position)
    return deepest + 1


@dataclass
class SystemConfig:
    """System-level configuration settings.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional path to a log file.
    """

    log_level: str = "INFO"
    log_file: Optional[str] = None


@dataclass
class AudioSettings:
    """Audio capture configuration settings.

    Attributes:
        sample_rate: Audio sampling rate in Hz.
        chunk_size: Number of frames per capture read.
        device_index: Specific audio device index (None for default).
        channels: Number of interleaved channels.
    """

    sample_rate: int = DEFAULT_SAMPLE_RATE
    chunk_size: int = DEFAULT_CHUNK_SIZE
    device_index: Optional[int] = None
    channels: int = DEFAULT_CHANNELS


@dataclass
class EngineConfig:
    """Settings for the scan loop.

    Attributes:
        window_hop: Samples to advance after a window without detection.
        history_depth: Correlation scores kept per kernel.
        sample_rate: Stream sample rate in Hz, for timestamps.
        channels: Interleaved channels in the stream, for timestamps.
    """

    window_hop: int = DEFAULT_HOP
    history_depth: int = DEFAULT_HISTORY_DEPTH
    sample_rate: int = DEFAULT_SAMPLE_RATE
    channels: int = DEFAULT_CHANNELS

    @property
    def samples_per_second(self) -> int:
        return self.sample_rate * self.channels

    @classmethod
    def for_rules(
        cls,
        rules: List[DetectionRule],
        sample_rate: int = DEFAULT_SAMPLE_RATE,
        channels: int = DEFAULT_CHANNELS,
    ) -> "EngineConfig":
        """Create an EngineConfig whose history is deep enough for `rules`.

        Keeps the default depth unless a rule reads further back.
        """
        return cls(
            history_depth=max(DEFAULT_HISTORY_DEPTH, min_history_depth(rules)),
            sample_rate=sample_rate,
            channels=channels,
        )


@dataclass
class GlobalConfig:
    """Unified configuration for the entire application.

    Loads system settings, audio parameters, template file paths and the
    rule table from a single YAML file or structure.
    """

    system: SystemConfig = field(default_factory=SystemConfig)
    audio: AudioSettings = field(default_factory=AudioSettings)
    templates: List[Path] = field(default_factory=list)
    rules: List[DetectionRule] = field(default_factory=lambda: list(DEFAULT_RULES))
    engine: EngineConfig = field(default_factory=EngineConfig)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "GlobalConfig":
        """Load the global configuration from a YAML file.

        The YAML file should have the following structure:
        ```yaml
        system:
          log_level: INFO
        audio:
          sample_rate: 48000
          channels: 2
        engine:
          window_hop: 24
        templates:
          - flash_01.wav
          - flash_02.wav
          - flash_03.wav
        rules:
          - include: "rules/flash.yaml"
        ```

        Relative template and include paths are resolved against the
        directory of the configuration file. Without a `rules` section the
        built-in rule table is used.

        Args:
            path: Path to the main configuration YAML file.

        Returns:
            A GlobalConfig object populated with the settings.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ConfigError(f"{path}: expected a mapping at the top level")

        # 1. System config
        sys_data = cls._section(data, "system", path)
        system_config = SystemConfig(
            log_level=sys_data.get("log_level", "INFO"),
            log_file=sys_data.get("log_file"),
        )

        # 2. Audio settings
        audio_data = cls._section(data, "audio", path)
        audio_config = AudioSettings(
            sample_rate=int(audio_data.get("sample_rate", DEFAULT_SAMPLE_RATE)),
            chunk_size=int(audio_data.get("chunk_size", DEFAULT_CHUNK_SIZE)),
            device_index=audio_data.get("device_index"),
            channels=int(audio_data.get("channels", DEFAULT_CHANNELS)),
        )

        # 3. Templates
        templates = [cls._resolve(path, t) for t in data.get("templates") or []]

        # 4. Rules
        rules: List[DetectionRule] = []
        raw_rules = data.get("rules")
        if raw_rules is None:
            rules = list(DEFAULT_RULES)
        else:
            if not isinstance(raw_rules, list):
                raise ConfigError(f"{path}: 'rules' must be a list")
            for item in raw_rules:
                if not isinstance(item, dict):
                    raise ConfigError(f"{path}: rule entries must be mappings, got {item!r}")
                if "include" in item:
                    include_path = cls._resolve(path, item["include"])
                    if not include_path.is_file():
                        raise ConfigError(f"Included rule file not found: {include_path}")
                    rules.extend(load_rules_from_yaml(include_path))
                else:
                    rules.append(parse_rule(item))

        # 5. Engine config, derived from rules and audio, then overrides
        engine_config = EngineConfig.for_rules(
            rules, sample_rate=audio_config.sample_rate, channels=audio_config.channels
        )
        engine_data = cls._section(data, "engine", path)
        if engine_data:
            if "window_hop" in engine_data:
                engine_config.window_hop = int(engine_data["window_hop"])
            if "history_depth" in engine_data:
                engine_config.history_depth = int(engine_data["history_depth"])

        return cls(
            system=system_config,
            audio=audio_config,
            templates=templates,
            rules=rules,
            engine=engine_config,
        )

    @staticmethod
    def _section(data: dict, name: str, config_path: Path) -> dict:
        # An empty section ("system:") loads as None
        section = data.get(name) or {}
        if not isinstance(section, dict):
            raise ConfigError(f"{config_path}: '{name}' must be a mapping")
        return section

    @staticmethod
    def _resolve(config_path: Path, entry: Union[str, Path]) -> Path:
        if not os.path.isabs(entry):
            return config_path.parent / entry
        return Path(entry)

    def load_templates(self) -> TemplateBank:
        """Decode the configured template files into a TemplateBank."""
        if not self.templates:
            raise ConfigError("No template files configured")
        return TemplateBank.from_wav_files(self.templates, expected_rate=self.audio.sample_rate)


def configure_logging(system: SystemConfig) -> None:
    """Apply the system logging settings to the root logger."""
    level = getattr(logging, str(system.log_level).upper(), None)
    if not isinstance(level, int):
        raise ConfigError(f"Unknown log level: {system.log_level}")

    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if system.log_file:
        handlers.append(logging.FileHandler(system.log_file))

    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATEFMT, handlers=handlers)
