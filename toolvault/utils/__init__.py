"""Shared utilities: structured logging and async subprocess execution."""
