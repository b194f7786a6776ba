"""Record storage layer.

This package owns the append-only record logs, the flat exports,
artifact upload and the relational staging sink.
"""
