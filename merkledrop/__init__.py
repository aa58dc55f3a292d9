"""merkledrop - CLI for building and querying token distribution Merkle trees."""

__version__ = "0.1.0"
