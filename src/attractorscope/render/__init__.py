"""Projection, color grading and video encoding."""
