#!/usr/bin/env python3
"""
Process Audio File Example

Demonstrates transcribing an existing WAV file into a templated note.
The audio file is securely deleted once the note has been saved.

Usage:
    python examples/process_audio_file.py <audio_file> --patient "Jane Doe" --dob 01/02/1980

Requirements:
    - GOOGLE_APPLICATION_CREDENTIALS environment variable set
    - TRANSCRIBER_GCS_BUCKET set to a bucket the credentials can write
    - 16-bit PCM WAV audio file
"""

import argparse
import sys
from pathlib import Path

from clinical_transcriber import Pipeline, PipelineConfig
from clinical_transcriber.transcription import CloudConfig


def main():
    parser = argparse.ArgumentParser(description="Transcribe an audio file to a clinical note")
    parser.add_argument("audio_file", type=Path, help="Audio file to process")
    parser.add_argument("--patient", "-p", required=True, help="Patient name")
    parser.add_argument("--dob", required=True, help="Date of birth")
    parser.add_argument("--template", "-t", default="default_template", help="Template name")
    parser.add_argument("--clean", action="store_true", help="Remove filler words")
    parser.add_argument("--config", "-c", type=Path, help="Config file")
    args = parser.parse_args()

    if not args.audio_file.exists():
        print(f"Error: File not found: {args.audio_file}")
        sys.exit(1)

    # Create pipeline
    if args.config:
        pipeline = Pipeline.from_config(args.config)
    else:
        config = PipelineConfig()
        config.cloud = CloudConfig.from_env()
        pipeline = Pipeline(config)

    print(f"Processing: {args.audio_file}")
    print(f"Template: {args.template}")

    result = pipeline.transcribe_recording(
        args.audio_file,
        args.patient,
        args.dob,
        template_name=args.template,
        clean=args.clean,
        on_status=print,
    )

    print()
    print(result.document)
    print(f"\n--- Saved to {result.document_path} ---")
    if not result.audio_disposed:
        print("Warning: audio file was not securely deleted")


if __name__ == "__main__":
    main()
