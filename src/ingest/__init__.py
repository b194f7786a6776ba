"""Dump scanning pipeline.

This package streams input chunks through the transforms and emits
account and transfer records into the append-only logs.
"""
