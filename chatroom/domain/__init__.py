"""
Chat room domain: models, storage ports and services.
"""
