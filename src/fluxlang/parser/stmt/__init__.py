"""Block-level parsing helpers attached to `Parser`."""
