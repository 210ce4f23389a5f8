"""Tests for the FFmpeg video encoder."""

import io
import shutil
import tempfile
from pathlib import Path

import numpy as np
import pytest

from attractorscope.render import encoder
from attractorscope.render.encoder import build_command, encode_video


@pytest.fixture
def tmp_dir():
    d = tempfile.mkdtemp(prefix="attractorscope_test_")
    yield Path(d)
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def ffmpeg():
    if shutil.which("ffmpeg") is None:
        pytest.skip("ffmpeg not installed")


def _solid_frames(n: int, width: int, height: int, color=(30, 90, 200)):
    """Generate N solid-color frames."""
    frame = np.full((height, width, 3), color, dtype=np.uint8)
    for _ in range(n):
        yield frame.copy()


class TestBuildCommand:
    def test_raw_rgb_input(self):
        cmd = build_command(Path("out.mp4"), 320, 240, fps=30)
        assert cmd[0] == "ffmpeg"
        assert cmd[cmd.index("-pixel_format") + 1] == "rgb24"
        assert cmd[cmd.index("-video_size") + 1] == "320x240"
        assert cmd[cmd.index("-framerate") + 1] == "30"
        assert cmd[cmd.index("-i") + 1] == "-"
        assert cmd[-1] == "out.mp4"

    def test_x264_settings(self):
        cmd = build_command(Path("out.mp4"), 1920, 1080, crf=12, preset="slow")
        assert cmd[cmd.index("-c:v") + 1] == "libx264"
        assert cmd[cmd.index("-crf") + 1] == "12"
        assert cmd[cmd.index("-preset") + 1] == "slow"
        assert cmd[cmd.index("-pix_fmt") + 1] == "yuv420p"
        assert "scenecut=0" in cmd[cmd.index("-x264-params") + 1]


class TestEncoder:
    def test_rejects_unknown_preset(self, tmp_dir, ffmpeg):
        with pytest.raises(ValueError):
            encode_video(_solid_frames(1, 64, 48), tmp_dir / "x.mp4", 64, 48, preset="warp")

    def test_produces_mp4(self, tmp_dir, ffmpeg):
        output = tmp_dir / "test_output.mp4"
        result = encode_video(
            frame_iterator=_solid_frames(30, 160, 120),
            output_path=output,
            width=160,
            height=120,
            fps=30,
            preset="ultrafast",
        )
        assert result.exists()
        assert result.stat().st_size > 0

    def test_progress_callback(self, tmp_dir, ffmpeg):
        progress = []
        encode_video(
            frame_iterator=_solid_frames(15, 160, 120),
            output_path=tmp_dir / "test_progress.mp4",
            width=160,
            height=120,
            fps=30,
            preset="ultrafast",
            total_frames=15,
            progress_callback=lambda cur, total: progress.append((cur, total)),
        )
        assert len(progress) == 15
        assert progress[-1] == (15, 15)

    def test_creates_parent_dirs(self, tmp_dir, ffmpeg):
        output = tmp_dir / "nested" / "deep" / "out.mp4"
        encode_video(_solid_frames(5, 160, 120), output, 160, 120, fps=30, preset="ultrafast")
        assert output.exists()


class _RecordingProcess:
    """Stands in for the ffmpeg subprocess."""

    instances = []

    def __init__(self, cmd, stdin=None, stdout=None, stderr=None):
        self.stdin = io.BytesIO()
        self.returncode = None
        self.waited = False
        _RecordingProcess.instances.append(self)

    def wait(self):
        self.waited = True
        self.returncode = 0
        return 0


class TestEncoderCleanup:
    @pytest.fixture
    def fake_ffmpeg(self, monkeypatch):
        _RecordingProcess.instances = []
        monkeypatch.setattr(encoder.shutil, "which", lambda name: "/usr/bin/ffmpeg")
        monkeypatch.setattr(encoder.subprocess, "Popen", _RecordingProcess)
        return _RecordingProcess.instances

    def test_waits_when_frames_fail(self, tmp_dir, fake_ffmpeg):
        def failing_frames():
            yield np.zeros((48, 64, 3), dtype=np.uint8)
            raise ValueError("renderer failed")

        with pytest.raises(ValueError, match="renderer failed"):
            encode_video(failing_frames(), tmp_dir / "x.mp4", 64, 48)
        assert len(fake_ffmpeg) == 1
        assert fake_ffmpeg[0].waited
        assert fake_ffmpeg[0].stdin.closed

    def test_waits_on_success(self, tmp_dir, fake_ffmpeg):
        out = encode_video(_solid_frames(3, 64, 48), tmp_dir / "ok.mp4", 64, 48)
        assert out == tmp_dir / "ok.mp4"
        assert fake_ffmpeg[0].waited
