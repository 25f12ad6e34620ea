"""Core Layer — pure domain logic, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - Functions are deterministic given their inputs (random source and clock injected)

Design Decisions:
    - Functional core separated from imperative shell: route guard, join codes and
      replica merge are testable without fakes
"""
