"""Tests for the adaptive exam engine backend."""
