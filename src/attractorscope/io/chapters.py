"""
Chapter log.

One human-readable line per attractor segment: the start and every family
switch. Timestamps are MM:SS at the chapter frame rate, so the lines can be
pasted as video chapter markers.
"""

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, TextIO, Union

from attractorscope.core.attractors import Family

CHAPTER_FPS = 60


@dataclass(frozen=True)
class ChapterEvent:
    """A family becoming active, with the coefficients it resolved to."""

    frame: int
    family: Family
    params: Sequence[float]
    fps: int = CHAPTER_FPS

    @property
    def seconds(self) -> int:
        return self.frame // self.fps

    @property
    def timestamp(self) -> str:
        mins, secs = divmod(self.seconds, 60)
        return f"{mins:02d}:{secs:02d}"


def format_params(family: int, p: Sequence[float]) -> str:
    fam = Family(family)
    if fam == Family.AIZAWA:
        return " ".join(
            f"{name}={value:.3f}" for name, value in zip("abcdef", p)
        )
    if fam == Family.THOMAS:
        return f"b={p[1]:.4f}"
    if fam == Family.LORENZ:
        return f"sigma={p[0]:.2f} rho={p[1]:.2f} beta={p[2]:.3f}"
    if fam == Family.HALVORSEN:
        return f"a={p[0]:.3f}"
    return f"a={p[0]:.2f} b={p[1]:.2f} c={p[2]:.2f}"


def format_event(event: ChapterEvent) -> str:
    return (
        f"{event.timestamp} {event.family.display_name} "
        f"{format_params(event.family, event.params)}"
    )


class ChapterLog:
    """Appends formatted chapter lines to a file; usable as an event callback."""

    def __init__(self, path: Union[str, Path, None]) -> None:
        self.path = Path(path) if path else None
        self._fh: Optional[TextIO] = None
        self.lines: list[str] = []

    def open(self) -> "ChapterLog":
        if self.path is None:
            return self
        try:
            self._fh = open(self.path, "w")
        except OSError:
            print(
                f"Warning: Could not open {self.path} for writing",
                file=sys.stderr,
            )
            self._fh = None
        return self

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None
            print(f"\nChapter log written to {self.path}", file=sys.stderr)

    def __enter__(self) -> "ChapterLog":
        return self.open()

    def __exit__(self, *exc) -> None:
        self.close()

    def __call__(self, event: ChapterEvent) -> None:
        line = format_event(event)
        self.lines.append(line)
        if self._fh is not None:
            self._fh.write(line + "\n")
            self._fh.flush()
