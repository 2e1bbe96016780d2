"""
Teamwork — Team task, document, and contribution tracker.

Members, tasks, and shared documents persist in a small key-value store;
a dashboard re-derives its panels (task board, document list, contribution
table, assignee options) after every change.
"""

__version__ = "1.0.0"
__all__ = ["engine", "db", "records", "services", "integrations"]
