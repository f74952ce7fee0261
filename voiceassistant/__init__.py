"""Voice Assistant - wake word, speech-to-text and spoken responses."""

__version__ = "0.1.0"
