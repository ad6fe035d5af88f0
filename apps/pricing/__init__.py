"""Pricing app package: per-date rate overrides and nightly price resolution."""
