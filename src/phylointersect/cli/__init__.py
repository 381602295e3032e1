"""
CLI commands for phylointersect.

Provides command-line interface for classification, summaries and
taxonomy index management.
"""

__all__ = ["classify", "main", "taxonomy"]
