"""Bridge layer between the log streamer and a remote Jenkins server.

Modules
-------
jenkins
    ``JenkinsClient`` (async, httpx) for status polls and progressive
    console reads, the ``AuthError`` / ``TransportError`` / ``DecodeError``
    taxonomy, and blocking one-shot helpers for the non-interactive
    commands.
"""
