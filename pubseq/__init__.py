"""pubseq - sequenced release orchestrator for multi-registry package sets."""

__version__ = "0.3.0"
