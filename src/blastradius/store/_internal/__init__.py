"""Store internals."""
