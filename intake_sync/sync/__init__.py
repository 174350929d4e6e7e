"""Sync engine, upstream connectors and scheduling."""
