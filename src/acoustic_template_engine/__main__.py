"""Command line runner.

Usage:
    python -m acoustic_template_engine --config engine.yaml
    python -m acoustic_template_engine -t flash_01.wav -t flash_02.wav -t flash_03.wav
    python -m acoustic_template_engine --config engine.yaml --audio recording.wav
"""

import argparse
import logging
import sys

from acoustic_template_engine.config import (
    GlobalConfig,
    SystemConfig,
    configure_logging,
    min_history_depth,
)
from acoustic_template_engine.engine import Engine
from acoustic_template_engine.rules import load_rules_from_yaml
from acoustic_template_engine.wav import load_float_wav

logger = logging.getLogger("acoustic_template_engine")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="acoustic_template_engine",
        description="Detect known sounds in live audio by template correlation.",
    )
    parser.add_argument("--config", "-c", help="Path to the engine YAML configuration")
    parser.add_argument(
        "--template",
        "-t",
        action="append",
        default=[],
        help="Template WAV file (repeat in kernel order; overrides the config)",
    )
    parser.add_argument("--rules", "-r", help="Rule table YAML (overrides the config)")
    parser.add_argument(
        "--audio", "-a", help="Replay a WAV file through the engine instead of capturing"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Show debug output")
    return parser


def run_file(engine: Engine, path: str, chunk_frames: int) -> int:
    """Feed a recording through the engine in capture-sized chunks."""
    samples = load_float_wav(path, expected_rate=engine.audio_config.sample_rate)
    chunk = chunk_frames * engine.audio_config.channels
    for i in range(0, len(samples), chunk):
        engine.process_chunk(samples[i : i + chunk])
    for detection in engine.detections:
        print(detection)
    return len(engine.detections)


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    config = GlobalConfig.load(args.config) if args.config else GlobalConfig()
    if args.template:
        config.templates = list(args.template)
    if args.rules:
        config.rules = load_rules_from_yaml(args.rules)
        config.engine.history_depth = max(
            config.engine.history_depth, min_history_depth(config.rules)
        )

    system = config.system
    if args.verbose:
        system = SystemConfig(log_level="DEBUG", log_file=system.log_file)
    configure_logging(system)

    if not config.templates:
        logger.error("No templates given: use --config or --template")
        return 2

    engine = Engine.from_config(config)

    if args.audio:
        run_file(engine, args.audio, config.audio.chunk_size)
        return 0

    try:
        engine.start()
    except KeyboardInterrupt:
        engine.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
