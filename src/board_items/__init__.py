"""Serverless proxy that pages shareable board items to a table front-end."""

__version__ = "1.0.0"
