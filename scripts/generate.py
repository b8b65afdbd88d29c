#!/usr/bin/env python3
"""
CLI: Generate one video from one prompt. Uses the remote pipeline when it is running,
the local procedural engine otherwise.
Usage:
  python scripts/generate.py "Your prompt here"
  python scripts/generate.py "Your prompt" --frames 48 --fps 12
  python scripts/generate.py "Your prompt" --output my_video.mp4 --procedural
"""
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

import argparse
import logging

from promptreel.config import load_config
from promptreel.errors import PromptreelError
from promptreel.models import LocalArtifact
from promptreel.pipeline import VideoGenerationService, build_request, save_local_artifact


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Generate one short video from a single text prompt."
    )
    parser.add_argument(
        "prompt",
        type=str,
        help="Text prompt describing the video you want.",
    )
    parser.add_argument("--width", type=int, default=None, help="Frame width (default from config).")
    parser.add_argument("--height", type=int, default=None, help="Frame height (default from config).")
    parser.add_argument("--frames", type=int, default=None, help="Number of frames (default from config).")
    parser.add_argument("--fps", type=float, default=None, help="Frame rate (default from config).")
    parser.add_argument("--negative", type=str, default=None, help="Negative prompt for the remote pipeline.")
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        default=None,
        help="Output path for locally generated video (default: output/video_<timestamp>.mp4).",
    )
    parser.add_argument(
        "--server",
        type=str,
        default=None,
        help="Remote pipeline URL (overrides config remote.server_url).",
    )
    parser.add_argument(
        "--procedural",
        action="store_true",
        help="Skip the remote pipeline and render procedurally.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to config YAML (default: config/default.yaml).",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging.")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config(args.config)
    if args.server:
        config["remote"] = {**config.get("remote", {}), "server_url": args.server}

    try:
        request = build_request(
            args.prompt,
            config,
            width=args.width,
            height=args.height,
            frame_count=args.frames,
            fps=args.fps,
            negative_prompt=args.negative,
        )
    except PromptreelError as e:
        print(f"Invalid request: {e.detail}", file=sys.stderr)
        return 2

    print(f"Prompt: {request.prompt[:60]}{'...' if len(request.prompt) > 60 else ''}")
    print(f"{request.frame_count} frames @ {request.fps:g} fps, {request.width}x{request.height}")

    def on_progress(percent: float, status: str) -> None:
        print(f"\r  [{percent:5.1f}%] {status:<40}", end="", flush=True)

    service = VideoGenerationService.from_config(config)
    try:
        if args.procedural:
            artifact = service.procedural.generate(request, on_progress)
        else:
            artifact = service.generate_video(request, on_progress)
    except PromptreelError as e:
        print(f"\nGeneration failed [{e.kind.value}]: {e.detail}", file=sys.stderr)
        return 1
    finally:
        service.close()
    print()

    if isinstance(artifact, LocalArtifact):
        path = save_local_artifact(artifact, config, args.output)
        print(f"Done. Video: {path} ({artifact.duration:.1f}s, {artifact.size} bytes)")
    else:
        print(f"Done. Video: {artifact.url}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
