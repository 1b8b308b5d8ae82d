"""
Schemas Package

Pydantic schemas for validating and serializing HTTP input. Core data
structures shared with the pipeline live in core.models.
"""

from .capture import CaptureQuery

__all__ = [
    "CaptureQuery",
]
