"""PMS Sync persistence."""
