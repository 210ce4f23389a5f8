"""
Frame pipeline.

Drives one simulated frame at a time through the fixed stage order:

  morph parameters → integrate particles → collect statistics
  → update camera → rasterize → tone-map

Each stage consumes the complete output of the one before it. Scalar state
(parameters, transition, camera) is snapshotted and passed by value into the
per-particle kernels.
"""

from typing import Callable, Iterator, Optional

import numpy as np

from attractorscope.config import CameraConfig, SimulationConfig
from attractorscope.core.attractors import Family
from attractorscope.core.camera import CameraController
from attractorscope.core.morph import ParameterMorph
from attractorscope.core.particles import ParticleStore, TransitionState, integrate
from attractorscope.core.stats import FrameStats, collect_stats, yaw_angle
from attractorscope.io.chapters import ChapterEvent
from attractorscope.render.colorgrade import tone_map
from attractorscope.render.rasterizer import FrameAccumulator, ProjectionView, rasterize

EventCallback = Callable[[ChapterEvent], None]


class CinematicPipeline:
    """
    Auto-framed particle renderer cycling through the attractor families.

    Every ``cycle_fragments`` fragments the active family advances to its
    cyclic successor and blends in over the transition window. The very
    first switch happens at the start of fragment ``cycle_fragments - 1``.
    """

    def __init__(
        self,
        config: Optional[SimulationConfig] = None,
        camera_config: Optional[CameraConfig] = None,
        event_callback: Optional[EventCallback] = None,
    ) -> None:
        self.cfg = config or SimulationConfig()
        self.camera_cfg = camera_config or CameraConfig()
        self.rng = np.random.default_rng(self.cfg.seed)
        self.event_callback = event_callback

        W, H = self.cfg.width, self.cfg.height
        start = Family(self.cfg.start_family)

        # All large allocations happen here, before the first frame
        self.particles = ParticleStore(self.cfg.num_particles, self.rng)
        self.accumulator = FrameAccumulator(W, H)
        self.frame_buffer: np.ndarray = np.zeros((H, W, 3), dtype=np.uint8)

        self.morph = ParameterMorph(start, self.rng, perturb=self.cfg.perturb_params)
        self.transition = TransitionState.steady(start)
        self.camera = CameraController(self.camera_cfg, start, W, H)

        self.frame_index = 0
        self._fragment_timer = 0
        self.last_stats: Optional[FrameStats] = None
        self.last_resets = 0
        self.last_drawn = 0

        self._emit_event(ChapterEvent(0, start, self.morph.snapshot(), self.cfg.fps))

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    @property
    def family(self) -> Family:
        return self.transition.current

    def _emit_event(self, event: ChapterEvent) -> None:
        if self.event_callback is not None:
            self.event_callback(event)

    def _schedule(self, frame: int) -> None:
        """Count fragment starts; switch family every ``cycle_fragments`` of them."""
        if frame % self.cfg.frames_per_fragment != 0:
            return
        self._fragment_timer += 1
        if self._fragment_timer < self.cfg.cycle_fragments:
            return
        self._fragment_timer = 0
        family = self.transition.switch()
        target = self.morph.retarget(family)
        self._emit_event(ChapterEvent(frame, family, target, self.cfg.fps))

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def step(self) -> FrameStats:
        """Advance the simulation and camera by one frame (no rasterization)."""
        cfg = self.cfg
        frame = self.frame_index

        self._schedule(frame)
        self.morph.step()
        self.transition.advance()

        self.last_resets = integrate(
            self.particles,
            self.transition,
            self.morph.snapshot(),
            dt=cfg.dt,
            max_coord=cfg.max_coord,
            backend=cfg.backend,
        )

        theta = yaw_angle(frame)
        stats = collect_stats(
            self.particles.positions,
            self.particles.velocities,
            theta,
            stride=cfg.sample_stride,
        )
        self.camera.update(stats, self.family, frame, cfg.frames_per_fragment)

        self.last_stats = stats
        self.frame_index += 1
        return stats

    def render_frame(self) -> np.ndarray:
        """
        Simulate and draw the next frame.

        Returns:
            (H, W, 3) uint8 frame. The array is reused: it is overwritten by
            the next call, so copy it if it must outlive the frame.
        """
        theta = yaw_angle(self.frame_index)
        self.accumulator.reset()
        self.step()

        view = ProjectionView.from_camera(self.camera.state, theta)
        self.last_drawn = rasterize(
            self.particles.positions,
            self.particles.velocities,
            view,
            self.accumulator,
            backend=self.cfg.backend,
            workers=self.cfg.workers,
        )
        return tone_map(
            self.accumulator.buffer,
            exposure=self.cfg.exposure,
            scale=self.cfg.tone_scale,
            out=self.frame_buffer,
        )

    def render_frames(
        self,
        total_frames: Optional[int] = None,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> Iterator[np.ndarray]:
        """
        Render frames as a generator.

        Args:
            total_frames: Frames to produce (default: fragments × frames per fragment).
            progress_callback: Optional callback(current, total).

        Yields:
            (H, W, 3) uint8 frames in generation order (buffer reused per frame).
        """
        total = self.cfg.total_frames if total_frames is None else total_frames
        for i in range(total):
            yield self.render_frame()

            if progress_callback:
                progress_callback(i + 1, total)

    def status_line(self) -> str:
        """Progress line for the most recently simulated frame."""
        t = self.transition
        return (
            f"Fr {max(self.frame_index - 1, 0)} | Type: {int(t.previous)}->{int(t.current)} "
            f"| Blend: {t.blend:.2f} | Scale: {self.camera.state.scale:.1f}"
        )
