"""Infrastructure Layer — external service clients and cross-cutting concerns.

Invariants:
    - Infrastructure never imports domain rules from core/ (errors excepted)
    - All external calls wrapped with retry/timeout/error mapping
"""
