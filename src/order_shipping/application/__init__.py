"""Application layer: command schemas and the handlers that run them.

Handlers sequence validation, repository reads, domain transitions,
persistence and event publication as one ``AsyncResult`` pipeline.
Every handler invocation resolves to ``Ok`` or ``Err``; none raise.
"""
