"""
Chain Attestation

Chunked checksums over an epoch-ordered message log, published to a local
archive and served for offline cross-verification between log operators.
"""

__version__ = "0.1.0"
