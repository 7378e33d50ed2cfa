"""Shared services: recording upload tokens and recording storage."""
