"""Teamwork services: tasks, documents, members, contributions."""
