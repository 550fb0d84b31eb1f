"""blocksync: convert block-structured documents into target markup and keep cross-references resolved."""

__version__ = "0.1.0"
