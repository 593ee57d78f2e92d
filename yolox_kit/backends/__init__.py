"""
Inference backends for yolox_kit.

Kept separate so the decode/NMS core can be used without installing an
inference runtime.
"""

from __future__ import annotations

__all__ = []
