"""Frame output and chapter logging."""

from attractorscope.io.chapters import ChapterEvent, ChapterLog
from attractorscope.io.emitter import FrameEmitter, save_snapshot

__all__ = ["ChapterEvent", "ChapterLog", "FrameEmitter", "save_snapshot"]
