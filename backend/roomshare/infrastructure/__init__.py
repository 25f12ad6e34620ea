"""Infrastructure Layer — adapters for the external platform.

Invariants:
    - Each adapter satisfies a Protocol from core/repository_protocols.py
    - Adapter failures are mapped to core/errors.py types before leaving the module
"""
