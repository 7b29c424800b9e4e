"""Memoria - Validation decision engine for emotional memories.

Memoria decides, for each candidate memory produced by an extraction
pipeline, whether it can be auto-approved, must be auto-rejected, or needs
human review, and orders the review work that remains.
"""

__version__ = "0.3.0"
__all__ = ["__version__"]
