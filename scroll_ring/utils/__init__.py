"""
Utilities package for scrolling ring output.
"""

from .logger import ScrollLogger

__all__ = [
    'ScrollLogger'
]
