"""HTTP surface of the generator service."""
