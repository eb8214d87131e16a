"""pkghist: package history reconstructed from the pacman transaction log."""

__version__ = "0.1.0"
