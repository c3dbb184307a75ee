"""Test suite for the pytest-hmr package.

This package contains unit and integration tests validating the spec
grammar and compiler, the command interpreter, the expectation engine,
the console monitor and the pytest integration.
"""
