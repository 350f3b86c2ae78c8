"""Tests for the cluster object clients."""
