"""Shared helpers: logging, exceptions, datetime handling, validation."""
