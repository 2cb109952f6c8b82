"""Tiered credential verification: registries, profiles, comparison and review."""
