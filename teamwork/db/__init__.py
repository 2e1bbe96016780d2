"""Teamwork storage backends (SQL key-value table, Redis)."""
