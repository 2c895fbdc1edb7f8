"""Data-integrity and scoring core for the candidate ranking platform."""

__version__ = "0.3.0"
