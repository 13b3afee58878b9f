"""Unified object storage API with local filesystem, in-memory, caching and IPFS backends."""

__version__ = "0.1.0"