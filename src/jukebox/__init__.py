"""CD Jukebox backend - command queue and playback coordination for a dual CD changer."""

__version__ = "1.0.0"
