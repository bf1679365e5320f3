"""
Chunked checksumming state machine.
"""

from .engine import ChecksumEngine, EngineState

__all__ = ["ChecksumEngine", "EngineState"]
