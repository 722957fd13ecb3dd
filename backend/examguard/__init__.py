"""Proctored exam sessions, violation logging and risk scoring."""

__version__ = "1.0.0"
