"""Normalization, validation and error-fix core for Client/Worker/Task datasets."""

__version__ = "0.3.0"
