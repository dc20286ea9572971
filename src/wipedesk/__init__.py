"""wipedesk - order, payment and delivery ledger for a wet-wipe manufacturer."""

__version__ = "0.1.0"
