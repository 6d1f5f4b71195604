# SPDX-License-Identifier: MIT
"""CLI command implementations."""

from . import generate, publish, validate

__all__ = ["generate", "publish", "validate"]
