"""Workshop material ledger and purchase-receipt automation."""

__version__ = "1.0.0"
