"""Directory inventory adapters."""

from hostsweep.directory.inventory import InventoryEntry, load_inventory, parse_entries

__all__ = ["InventoryEntry", "load_inventory", "parse_entries"]
