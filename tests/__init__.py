"""
Test suite for Field Sales Ops.

Run all tests: pytest
Run unit tests only: pytest tests/unit/
Run specific file: pytest tests/unit/test_wave_service.py -v
"""
