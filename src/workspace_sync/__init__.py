"""
Workspace Sync - server side of a live workspace file synchronization protocol.

Editor clients stream file-change notifications over Socket.IO; the server
reconciles each one against a durable workspace/file store and reports:
- an immediate "received" acknowledgement
- a final result once the store has been updated
"""

__version__ = "0.1.0"
__author__ = "Workspace Sync Team"

__all__ = ["__version__"]
