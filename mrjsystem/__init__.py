"""Frame protocol, Fleck client and Arkham logger for a file distortion network."""

__version__ = "0.1.0"