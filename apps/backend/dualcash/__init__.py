"""dualcash backend: USD/VES ledger with rate normalization and cursor sync."""
