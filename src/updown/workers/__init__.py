"""arq background workers."""
