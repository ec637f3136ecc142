"""
Module to support aiohabridge testing.

This support package is version-locked to the main aiohabridge package.
The version is sourced from aiohabridge.const.VERSION.
"""

from __future__ import annotations

from aiohabridge.const import VERSION as _AIOHABRIDGE_VERSION

# Version of this package, same as aiohabridge
__version__ = _AIOHABRIDGE_VERSION
