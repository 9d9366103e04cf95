"""Spot price feed client."""
