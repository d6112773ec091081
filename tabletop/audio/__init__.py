"""Audio package."""

from .sounds import SoundManager, SOUND_NAMES, synthesize

__all__ = ["SoundManager", "SOUND_NAMES", "synthesize"]
