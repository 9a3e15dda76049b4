"""Domain layer: records, store ports and the reconciliation core."""
