"""SolarLens: solar proposal and utility bill analysis service."""

__version__ = "1.0.0"
