"""Test helpers for nginx-operator tools."""

from pathlib import Path

TESTDATA = Path(__file__).parent.parent / "testdata"
CLUSTER = TESTDATA / "cluster.yaml"
