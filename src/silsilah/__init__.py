"""silsilah: family-tree relationship engine with an append-only audit trail."""

__version__ = "0.1.0"
