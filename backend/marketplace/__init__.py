"""Slot reservation and booking lifecycle engine for a services marketplace."""

__version__ = "1.0.0"
