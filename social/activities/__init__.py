"""Activity records: per-resource counters, report info and ban info."""
