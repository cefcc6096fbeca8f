"""Text processing helpers for console output.

Modules
-------
wordwrap
    ``WordWrapWriter`` and ``wrap()`` — streaming, ANSI-aware greedy word
    wrapping that never splits words or escape sequences.
"""
