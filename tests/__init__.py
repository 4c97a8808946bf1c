"""Test suite for s3d_toolkit."""
