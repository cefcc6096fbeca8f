"""Terminal view of a streaming console log.

Modules
-------
viewport
    ``ViewportModel`` — a scrollable window over wrapped lines — and
    ``ViewportSync``, which feeds a build's buffer into it and keeps the
    view pinned to the bottom unless the user scrolled away.
renderer
    ``StreamRenderer`` turns stream state and the viewport into Rich
    renderables for ``Rich.Live``.
keys
    ``KeyReader`` and ``decode_keys`` — cbreak-mode keyboard input mapped
    to quit and scroll events.
"""
