"""Clip extraction service built around yt-dlp and ffmpeg."""

__version__ = "0.1.0"
