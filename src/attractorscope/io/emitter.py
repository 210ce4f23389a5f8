"""
Raw frame output.

Frames leave the process as uncompressed interleaved rgb24, row-major, top
row first, one complete frame per write. This is what ``ffmpeg -f rawvideo
-pixel_format rgb24`` reads on its stdin.
"""

from pathlib import Path
from typing import BinaryIO, Union

import numpy as np
from PIL import Image


class FrameEmitter:
    """Writes fixed-size rgb24 frames to a binary stream."""

    def __init__(self, stream: BinaryIO, width: int, height: int) -> None:
        self.stream = stream
        self.width = width
        self.height = height
        self.frames_written = 0

    @property
    def frame_bytes(self) -> int:
        return self.width * self.height * 3

    def emit(self, frame: np.ndarray) -> None:
        if frame.shape != (self.height, self.width, 3) or frame.dtype != np.uint8:
            raise ValueError(
                f"expected ({self.height}, {self.width}, 3) uint8 frame, "
                f"got {frame.shape} {frame.dtype}"
            )
        self.stream.write(np.ascontiguousarray(frame).tobytes())
        self.frames_written += 1

    def flush(self) -> None:
        self.stream.flush()


def save_snapshot(frame: np.ndarray, path: Union[str, Path]) -> Path:
    """Write a single (H, W, 3) uint8 frame as an image (format from suffix)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(np.ascontiguousarray(frame)).save(path)
    return path
