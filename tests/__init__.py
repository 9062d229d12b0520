"""Tests for shellstrap."""
