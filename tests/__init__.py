"""Test suite for tap-notion-discovery."""
