"""
Core infrastructure: configuration, logging, errors and the SQLite store.
"""
