"""Shared models, services and utilities for the top-up backend."""

__version__ = "0.1.0"
