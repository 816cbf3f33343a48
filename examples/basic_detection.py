#!/usr/bin/env python3
"""Example: Live detection from an audio input device.

Loads three template recordings and listens on the configured input
device. Choose a loopback device to detect sounds the machine plays.
"""

import logging
from acoustic_template_engine import AudioConfig, Engine, TemplateBank

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s | %(levelname)-8s | %(message)s", datefmt="%H:%M:%S"
)


def on_event_detected(name: str):
    """Callback when an event is detected."""
    print(f"\nDETECTED: {name}\n")


def main():
    bank = TemplateBank.from_wav_files(
        ["templates/flash_01.wav", "templates/flash_02.wav", "templates/flash_03.wav"],
        expected_rate=48000,
    )
    print(f"Loaded {len(bank)} template(s), window {bank.window_length} samples")

    engine = Engine(
        bank,
        audio_config=AudioConfig(sample_rate=48000, channels=2, chunk_size=480),
        on_detection=on_event_detected,
    )

    print("Starting audio capture...")
    print("   Press Ctrl+C to stop\n")

    # Start listening (blocking)
    try:
        engine.start()
    except KeyboardInterrupt:
        print("\nStopping...")
        engine.stop()


if __name__ == "__main__":
    main()
