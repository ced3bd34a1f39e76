"""
Background Jobs for court publications.

- publication_notifications: re-run subscriber notifications for an artefact
"""

from .publication_notifications import run_publication_notifications

__all__ = ["run_publication_notifications"]
