"""Ingestion and search pipelines.

Each step is callable independently: normalization and batch planning are
pure functions, while ingestion and search take their collaborators as
arguments.
"""
