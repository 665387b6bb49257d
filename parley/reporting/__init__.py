"""Console reporting for conversation results."""

from .transcript import print_transcript

__all__ = ["print_transcript"]
