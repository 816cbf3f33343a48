#!/usr/bin/env python3
"""Example: Process audio without live capture.

This example shows how to feed audio data directly to the engine,
useful for:
- Processing recordings
- Custom audio sources
- Testing and simulation
"""

import logging

import numpy as np
from acoustic_template_engine import Engine, EngineConfig, TemplateBank
from acoustic_template_engine.models import DetectionRule, RatioCheck, TracePosition

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s | %(levelname)-8s | %(message)s", datefmt="%H:%M:%S"
)

SAMPLE_RATE = 48000


def generate_chirp(duration: float, f0: float, f1: float, sample_rate: int) -> np.ndarray:
    """Generate a linear chirp with a short fade in/out."""
    t = np.arange(int(sample_rate * duration)) / sample_rate
    phase = 2 * np.pi * (f0 * t + (f1 - f0) / (2 * duration) * t**2)
    envelope = np.minimum(1.0, np.minimum(t / 0.002, (duration - t) / 0.002))
    return (np.sin(phase) * envelope * 0.5).astype(np.float32)


def main():
    # Three templates: the whole chirp plus its first and second halves
    chirp = generate_chirp(0.02, 2000, 6000, SAMPLE_RATE)
    half = len(chirp) // 2
    first = np.concatenate([chirp[:half], np.zeros(len(chirp) - half, dtype=np.float32)])
    second = np.concatenate([np.zeros(half, dtype=np.float32), chirp[half:]])
    bank = TemplateBank.load([chirp, first, second])

    # Fire when the full-chirp score peaks and both halves agree with it
    full_energy = float(np.dot(chirp, chirp))
    rule = DetectionRule(
        variant=1,
        name="chirp",
        reference=TracePosition(0, 0),
        min_magnitude=full_energy * 0.8,
        checks=[
            RatioCheck(1, 0, float(np.dot(chirp, first)) / full_energy, tolerance=0.1),
            RatioCheck(2, 0, float(np.dot(chirp, second)) / full_energy, tolerance=0.1),
        ],
    )

    detections = []
    engine = Engine(
        bank,
        rules=[rule],
        engine_config=EngineConfig(history_depth=1, window_hop=24, sample_rate=SAMPLE_RATE, channels=1),
        on_match=detections.append,
    )

    print("Generating synthetic stream...")
    rng = np.random.default_rng(0)
    silence = np.zeros(SAMPLE_RATE // 10, dtype=np.float32)
    parts = []
    for _ in range(3):
        parts.append(silence)
        parts.append(chirp)
    parts.append(silence)
    stream = np.concatenate(parts) + (rng.standard_normal(sum(len(p) for p in parts)) * 0.01).astype(
        np.float32
    )

    # Feed to engine chunk by chunk (10ms each)
    chunk_size = SAMPLE_RATE // 100
    for i in range(0, len(stream), chunk_size):
        engine.process_chunk(stream[i : i + chunk_size])

    print(f"\nDetections: {len(detections)}")
    for d in detections:
        print(f"  {d}")


if __name__ == "__main__":
    main()
