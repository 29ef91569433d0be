"""Image naming, reference parsing, build configuration and publishing helpers for Go import paths."""

__version__ = "0.1.0"