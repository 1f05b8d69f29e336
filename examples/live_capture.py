#!/usr/bin/env python3
"""
Live Audio Capture Example

Demonstrates recording from the microphone and transcribing in the
background with a cancellable task.

Usage:
    python examples/live_capture.py --patient "Jane Doe" --dob 01/02/1980 [--duration 30]

Requirements:
    - GOOGLE_APPLICATION_CREDENTIALS environment variable set
    - Microphone connected
"""

import argparse
import time

from clinical_transcriber import Pipeline, PipelineConfig
from clinical_transcriber.capture import AudioCapture
from clinical_transcriber.transcription import CloudConfig


def list_devices():
    """List available audio input devices."""
    devices = AudioCapture.list_devices()

    if not devices:
        print("No audio input devices found")
        return

    print("Available audio input devices:")
    print("-" * 50)
    for device in devices:
        print(f"  [{device['index']}] {device['name']}")
        print(f"      Channels: {device['channels']}, Sample Rate: {device['sample_rate']} Hz")
    print()


def main():
    parser = argparse.ArgumentParser(description="Record and transcribe a dictation")
    parser.add_argument("--duration", "-d", type=float, default=30.0,
                        help="Max recording duration in seconds")
    parser.add_argument("--patient", "-p", help="Patient name")
    parser.add_argument("--dob", help="Date of birth")
    parser.add_argument("--list-devices", action="store_true",
                        help="List audio devices and exit")
    args = parser.parse_args()

    if args.list_devices:
        list_devices()
        return

    config = PipelineConfig()
    config.cloud = CloudConfig.from_env()
    pipeline = Pipeline(config)

    print("=" * 60)
    print("Clinical Transcriber Live Capture")
    print("=" * 60)
    print(f"Max duration: {args.duration}s")
    print("Press Ctrl+C to stop early.")
    print("-" * 60)

    session = pipeline.start_recording()
    print(f"Recording to {session.file_path}")
    try:
        time.sleep(args.duration)
    except KeyboardInterrupt:
        pass
    audio = pipeline.stop_recording()

    if audio is None:
        print("Recording failed")
        return
    print(f"Captured {audio.duration_seconds:.1f}s")

    if not (args.patient and args.dob):
        print(f"No patient details given; audio kept at {audio.path}")
        return

    task = pipeline.transcriber.transcribe_async(audio, args.patient, on_status=print)
    try:
        transcript = task.result()
    except KeyboardInterrupt:
        task.cancel()
        print("\n\nTranscription cancelled by user.")
        return
    finally:
        pipeline.transcriber.shutdown()

    document = pipeline.compose(transcript, args.patient, args.dob, "default_template", clean=True)
    path = pipeline.store.save_new(document, args.patient, args.dob)
    pipeline.discard_recording(audio, args.patient)

    print("-" * 60)
    print(document)
    print(f"\n--- Saved to {path} ---")


if __name__ == "__main__":
    main()
