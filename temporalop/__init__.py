"""Versions, validation, defaulting, status and configuration helpers for Temporal clusters on Kubernetes."""

__version__ = "0.1.0"