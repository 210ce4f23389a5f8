"""
CLI entry point for the cinematic attractor renderer.

Usage:
    attractorscope [options] | ffmpeg -f rawvideo -pixel_format rgb24 ...
    attractorscope [options] -o cinematic.mp4
    python -m attractorscope [options]

Raw rgb24 frames go to stdout unless ``--output`` is given, in which case
they are piped to ffmpeg directly. Status lines always go to stderr.
"""

import argparse
import sys
import time
from pathlib import Path

from attractorscope.config import CameraConfig, SimulationConfig, load_camera_config
from attractorscope.core.attractors import NUM_FAMILIES, Family
from attractorscope.io.chapters import ChapterLog
from attractorscope.io.emitter import FrameEmitter, save_snapshot
from attractorscope.pipeline import CinematicPipeline
from attractorscope.render.encoder import PRESETS, encode_video

STATUS_EVERY = 60


def _status_reporter(pipeline: CinematicPipeline):
    """Progress callback printing the pipeline status line to stderr."""

    def report(current: int, total: int) -> None:
        if current % STATUS_EVERY == 1 or current >= total:
            sys.stderr.write(pipeline.status_line() + f" | {current}/{total}\r")
            sys.stderr.flush()

    return report


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="attractorscope",
        description="Cinematic strange attractor particle renderer",
    )

    # Timeline
    parser.add_argument("-n", "--fragments", type=int, default=20,
                        help="Number of fragments (default: 20)")
    parser.add_argument("-f", "--frames", type=int, default=300,
                        help="Frames per fragment (default: 300)")
    parser.add_argument("--cycle", type=int, default=6,
                        help="Fragments between attractor switches (default: 6)")
    parser.add_argument(
        "-s", "--start-type", type=int, default=0,
        help="Starting attractor: "
        + " ".join(f"{int(f)}={f.display_name}" for f in Family),
    )

    # Simulation
    parser.add_argument("-p", "--particles", type=int, default=2_000_000,
                        help="Number of particles (default: 2000000)")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--backend", type=str, default="numba",
                        choices=["numba", "numpy"],
                        help="Per-particle kernel backend (default: numba)")
    parser.add_argument("--workers", type=int, default=1,
                        help="Rasterizer threads for the numpy backend (default: 1)")

    # Camera
    parser.add_argument("-c", "--config", type=Path, default=None,
                        help="Config file for zoom parameters (optional)")

    # Output
    parser.add_argument("--width", type=int, default=1920, help="Frame width (default: 1920)")
    parser.add_argument("--height", type=int, default=1080, help="Frame height (default: 1080)")
    parser.add_argument("--fps", type=int, default=60, help="Frame rate (default: 60)")
    parser.add_argument("--chapters", type=str, default="chapters.txt",
                        help="Chapter log path, empty string disables (default: chapters.txt)")
    parser.add_argument("-o", "--output", type=Path, default=None,
                        help="Encode to this MP4 via ffmpeg instead of writing raw frames to stdout")
    parser.add_argument("--crf", type=int, default=18,
                        help="Video quality 0-51, lower=better (default: 18)")
    parser.add_argument("--preset", type=str, default="fast", choices=PRESETS,
                        help="Encoding preset (default: fast)")
    parser.add_argument("--snapshot", type=Path, default=None,
                        help="Also save the last frame as an image")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    try:
        sim_cfg = SimulationConfig(
            width=args.width,
            height=args.height,
            fps=args.fps,
            num_particles=args.particles,
            fragments=args.fragments,
            frames_per_fragment=args.frames,
            start_family=args.start_type % NUM_FAMILIES,
            cycle_fragments=args.cycle,
            seed=args.seed,
            backend=args.backend,
            workers=args.workers,
        )
        cam_cfg = load_camera_config(args.config) if args.config else CameraConfig()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    total_frames = sim_cfg.total_frames
    print(
        f"Rendering {total_frames} frames ({sim_cfg.fragments} x {sim_cfg.frames_per_fragment}) "
        f"at {sim_cfg.width}x{sim_cfg.height}, {sim_cfg.num_particles} particles, "
        f"start: {Family(sim_cfg.start_family).display_name}",
        file=sys.stderr,
    )

    t0 = time.time()
    with ChapterLog(args.chapters or None) as chapters:
        try:
            pipeline = CinematicPipeline(sim_cfg, cam_cfg, event_callback=chapters)
        except MemoryError:
            print(
                f"Error: could not allocate buffers for {sim_cfg.num_particles} particles",
                file=sys.stderr,
            )
            return 1

        report = _status_reporter(pipeline)
        frames = pipeline.render_frames(progress_callback=report)

        try:
            if args.output is not None:
                encode_video(
                    frame_iterator=frames,
                    output_path=args.output,
                    width=sim_cfg.width,
                    height=sim_cfg.height,
                    fps=sim_cfg.fps,
                    crf=args.crf,
                    preset=args.preset,
                )
            else:
                emitter = FrameEmitter(sys.stdout.buffer, sim_cfg.width, sim_cfg.height)
                for frame in frames:
                    emitter.emit(frame)
                emitter.flush()
        except (BrokenPipeError, RuntimeError) as e:
            print(f"\nError: {e}", file=sys.stderr)
            return 1

        if args.snapshot is not None and pipeline.frame_index > 0:
            save_snapshot(pipeline.frame_buffer, args.snapshot)

    elapsed = time.time() - t0
    print(
        f"\nDone! {pipeline.frame_index} frames in {elapsed:.1f}s "
        f"({pipeline.frame_index / max(elapsed, 0.01):.1f} fps)",
        file=sys.stderr,
    )
    if args.output is not None:
        print(f"  Output: {args.output}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
