"""
Budget Ledger - Source Package

A local-first personal budget ledger. Records live on the device and are
reconciled against a remote store whenever a sync endpoint is configured.

DESIGN PRINCIPLES:
1. Local writes never wait for the network
2. Persist first, then change memory
3. Remote is authoritative once it has echoed a record back
4. Sync failures are reported, never raised into the caller
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Budget Ledger Team"
