"""
Test suite for the attestation service.

Focus areas:
- Gap detection over log epochs and archive ranges
- Digest determinism and scratch isolation
- Checksum engine cursor/backoff behavior
- Read API range validation
- Service lifecycle
- HTTP, CLI and metrics surfaces
"""
