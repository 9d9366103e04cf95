"""Round timing and the bet ledger."""
