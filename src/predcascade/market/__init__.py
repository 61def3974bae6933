"""Market instance - ledger, odds and resolution."""
