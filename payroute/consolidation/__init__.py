"""Balance consolidation into a single target asset."""
