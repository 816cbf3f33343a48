"""Acoustic Template Engine - Real-time matched-filter event detection.

A standalone library for detecting short, known sounds in a live audio
stream by correlating a sliding window against reference recordings and
classifying the recent correlation history with a rule table.

Usage:
    from acoustic_template_engine import Engine, TemplateBank

    bank = TemplateBank.from_wav_files(["flash_01.wav", "flash_02.wav", "flash_03.wav"])
    engine = Engine(bank, on_detection=print)
    engine.start()
"""

__version__ = "1.0.0"

# Core exports
from acoustic_template_engine.errors import ConfigError, EngineError, InsufficientDataError
from acoustic_template_engine.models import Detection, DetectionRule, RatioCheck, TracePosition
from acoustic_template_engine.templates import TemplateBank
from acoustic_template_engine.stream_buffer import StreamBuffer
from acoustic_template_engine.history import HistoryTracker
from acoustic_template_engine.processing.correlation import correlate
from acoustic_template_engine.classifier import EventClassifier, classify
from acoustic_template_engine.scanner import ScanLoop, ScanState
from acoustic_template_engine.engine import Engine
from acoustic_template_engine.listener import AudioConfig, AudioListener
from acoustic_template_engine.config import EngineConfig, GlobalConfig, configure_logging
from acoustic_template_engine.rules import (
    DEFAULT_RULES,
    load_rules_from_yaml,
    save_rules_to_yaml,
)

__all__ = [
    # Version
    "__version__",
    # Core classes
    "Engine",
    "ScanLoop",
    "ScanState",
    "TemplateBank",
    "StreamBuffer",
    "HistoryTracker",
    "EventClassifier",
    "AudioConfig",
    "AudioListener",
    # Functions
    "correlate",
    "classify",
    # Configuration
    "EngineConfig",
    "GlobalConfig",
    "configure_logging",
    # Models
    "Detection",
    "DetectionRule",
    "RatioCheck",
    "TracePosition",
    # Errors
    "EngineError",
    "ConfigError",
    "InsufficientDataError",
    # Rule loading
    "DEFAULT_RULES",
    "load_rules_from_yaml",
    "save_rules_to_yaml",
]
