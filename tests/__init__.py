"""
Test suite for rdx-ledger

Contains:
- tests/unit/          : Unit tests for individual modules and the ledger aggregate
"""
