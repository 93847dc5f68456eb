"""Fetch, extract and normalize Romanian subtitles from titrari.ro archives."""

__version__ = "3.1.0"
