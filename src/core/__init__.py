"""
Core domain models, integer math primitives, and invariants.

This module contains the foundational building blocks of the ledger that are
independent of external collaborators (exchanges, deployment tooling, bridges).
"""
