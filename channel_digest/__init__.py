"""Channel Digest — Discord gateway listener that DMs scheduled channel digests."""

__version__ = "0.1.0"
