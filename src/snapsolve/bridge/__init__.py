"""Command/result bridge for snapsolve.

Exposes the pipeline to the UI process over HTTP commands and a
WebSocket result stream.
"""
