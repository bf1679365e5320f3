"""
attest CLI - Chunked message index checksums

Commands:
- attest run - Run the checksummer and/or the read API
- attest archive gaps/get/exists/ranges - Inspect a checksum archive
- attest version
"""

__version__ = "0.1.0"
