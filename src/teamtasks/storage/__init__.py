"""Document persistence: atomic writes, locks, and the JSON store."""
