#!/usr/bin/env python3
"""
Host Inventory Sync
===================

Listens for VM change events from the topological inventory and creates the
matching host inventory records, linking each VM to its host.

Requirements:
- Python 3.9+
- pip install -e .

Usage:
    python host-inventory-sync.py --source-api http://topological-inventory:3000/v0.1 \\
        --host-inventory-api http://host-inventory:8080/api/inventory/v1 \\
        --queue-host kafka --queue-port 9092

Settings not given on the command line are read from HOST_INVENTORY_SYNC_*
environment variables (see host_inventory_sync/config.py).
"""

import sys

from host_inventory_sync.cli import main

if __name__ == "__main__":
    sys.exit(main())
