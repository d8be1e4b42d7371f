"""
Input plugins package.

Input plugins accept resource declarations from users and write them to the
resource store.
"""

from plugins.inputs.base import InputPlugin

__all__ = ["InputPlugin"]
