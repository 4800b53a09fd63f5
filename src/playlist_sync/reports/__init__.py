"""Report generation from the sync ledger."""
