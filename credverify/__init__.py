"""Credential verification service."""
