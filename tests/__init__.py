"""
Test package for the Translation License Gateway.

- unit: service, model and endpoint tests (no network, no database)
"""
