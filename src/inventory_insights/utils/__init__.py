"""Shared utilities: configuration, logging, exceptions and retry."""
