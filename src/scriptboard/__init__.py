"""Scriptboard: script-to-storyboard image generation."""

__version__ = "0.1.0"
