"""Shared helpers: the Result outcome type, operation logging and pagination."""
