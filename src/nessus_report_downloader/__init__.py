"""Bulk downloader for reports held by a Nessus scanner."""

__version__ = "1.0"
