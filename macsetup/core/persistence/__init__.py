"""Side files — ledger, backups, owner-only secrets."""
