"""
Test suite for Persuader.
"""
