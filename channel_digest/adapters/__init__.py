"""Adapters — gateway, Discord REST, storage and web."""
