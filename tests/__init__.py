#!/usr/bin/env python3
"""
Test suite for SwipeMatch.

    # Run all tests
    python -m pytest tests/ -v

    # Skip the multi-threaded store tests
    python -m pytest tests/ -v -m "not concurrency"

Repository, ledger and pipeline tests run against a file-backed SQLite
database created per test, so no external services are required.
"""
