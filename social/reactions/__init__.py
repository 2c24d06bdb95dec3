"""Reactions: one typed reaction per source per resource."""
