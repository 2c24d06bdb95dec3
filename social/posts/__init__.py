"""Posts: the top-level resources that carry activity."""
