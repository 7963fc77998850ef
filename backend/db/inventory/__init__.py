"""
Inventory ledger.

Models:
- Item (stocked good, optionally placed in a Location)
- InventoryLog (append-only quantity deltas; the only record of how stock moved)
"""
