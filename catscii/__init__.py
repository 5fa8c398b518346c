"""catscii: serves a random cat picture as ASCII art."""

__version__ = "0.1.0"
