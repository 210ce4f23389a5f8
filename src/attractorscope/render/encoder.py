"""
FFmpeg video encoder.

Pipes raw RGB frames to ffmpeg via stdin and encodes H.264. No intermediate
files: frames go straight from numpy arrays to the encoder.
"""

import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Callable, Iterator, Optional

import numpy as np

PRESETS = (
    "ultrafast", "superfast", "veryfast", "faster", "fast",
    "medium", "slow", "slower", "veryslow",
)


def build_command(
    output_path: Path,
    width: int,
    height: int,
    fps: int = 60,
    crf: int = 18,
    preset: str = "fast",
) -> list:
    """ffmpeg argument list for a raw rgb24 stdin stream."""
    return [
        "ffmpeg", "-y",
        # Raw video input from pipe
        "-f", "rawvideo",
        "-pixel_format", "rgb24",
        "-video_size", f"{width}x{height}",
        "-framerate", str(fps),
        "-i", "-",
        # Video encoding; fixed GOP, no scene-cut keyframes
        "-c:v", "libx264",
        "-preset", preset,
        "-crf", str(crf),
        "-g", "300",
        "-keyint_min", "60",
        "-x264-params", "scenecut=0:rc-lookahead=60",
        "-tune", "animation",
        "-pix_fmt", "yuv420p",
        str(output_path),
    ]


def encode_video(
    frame_iterator: Iterator[np.ndarray],
    output_path: Path,
    width: int = 1920,
    height: int = 1080,
    fps: int = 60,
    crf: int = 18,
    preset: str = "fast",
    total_frames: Optional[int] = None,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> Path:
    """
    Encode frames to MP4.

    Args:
        frame_iterator: Yields (H, W, 3) uint8 numpy arrays.
        output_path: Output MP4 path.
        width: Frame width.
        height: Frame height.
        fps: Frames per second.
        crf: x264 constant rate factor, 0-51, lower is better.
        preset: x264 speed preset.
        total_frames: Total frame count for progress reporting.
        progress_callback: Optional callback(current_frame, total_frames).

    Returns:
        Path to the output file.
    """
    if shutil.which("ffmpeg") is None:
        raise RuntimeError("ffmpeg not found. Please install ffmpeg.")
    if preset not in PRESETS:
        raise ValueError(f"Unknown x264 preset {preset!r}")

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    # ffmpeg logs to a file so a full stderr pipe can never stall the writer
    with tempfile.TemporaryFile() as log:
        proc = subprocess.Popen(
            build_command(output_path, width, height, fps, crf, preset),
            stdin=subprocess.PIPE,
            stdout=subprocess.DEVNULL,
            stderr=log,
        )

        frame_count = 0
        try:
            for frame in frame_iterator:
                proc.stdin.write(np.ascontiguousarray(frame).tobytes())
                frame_count += 1

                if progress_callback and total_frames:
                    progress_callback(frame_count, total_frames)

        except BrokenPipeError:
            # ffmpeg died early; its log explains why
            pass
        finally:
            if proc.stdin:
                proc.stdin.close()
            proc.wait()

        log.seek(0)
        stderr = log.read().decode("utf-8", errors="replace")

    if proc.returncode != 0:
        error_lines = [
            line for line in stderr.split("\n")
            if "error" in line.lower() or "invalid" in line.lower()
        ]
        error_msg = "\n".join(error_lines[-5:]) if error_lines else stderr[-500:]
        raise RuntimeError(
            f"ffmpeg exited with code {proc.returncode}: {error_msg}"
        )

    return output_path
