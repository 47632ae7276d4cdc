"""Bouquet generation client and its HTTP surface."""
