"""
Services Layer

- open_play: the pure rotation engine (reducer, selection, standings)
- session_host: the single writer that persists state and runs effects
- the remaining modules are the stores and outbound clients effects talk to

Nothing here depends on HTTP request/response objects.
"""
