"""HTTP dispatch package.

Provides the `requests`-based dispatcher and the incremental event-stream
reader used for streaming operations.
"""
