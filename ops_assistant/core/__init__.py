"""
Core engine logic shared by the adapters.

This module contains:
- Deadline and cancellation primitives for outbound calls
- Identifier generators for messages and sessions
- Response text generation for dispatch results
"""

from . import deadline
from . import ids
from . import response_generator

__all__ = [
    'deadline',
    'ids',
    'response_generator'
]
