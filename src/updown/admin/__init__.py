"""Token-gated maintenance operations."""
