#!/usr/bin/env python3
"""
Workspace Sync Server - Main entry point for python -m workspace_sync
"""

from workspace_sync.cli import main

if __name__ == "__main__":
    main()
