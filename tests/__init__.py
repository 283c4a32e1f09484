"""Tests for nupm."""
