"""
Test suite for the admin import backend.

Run all tests: pytest
Run unit tests only: pytest tests/unit/
Run specific file: pytest tests/unit/test_validators.py -v
"""
