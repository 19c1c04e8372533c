"""Computerized Adaptive Testing core: 3PL model, ability estimation, item selection."""

__version__ = "0.1.0"
