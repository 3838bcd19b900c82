"""Provider lifecycle base classes."""
