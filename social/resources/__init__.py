"""Shared identities of reactable resources and acting sources."""
