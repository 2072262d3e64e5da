"""Catalog package: CSV ingestion, vector storage, search pipelines and API.

This package normalizes a product CSV feed, embeds each product, upserts the
vectors into a vector store, and answers free-text product searches.
"""
