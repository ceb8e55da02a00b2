"""Generation job lifecycle manager for image, video and audio providers."""

__version__ = "0.1.0"
