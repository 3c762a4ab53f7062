"""Infrastructure Layer — external service clients and cross-cutting concerns.

Invariants:
    - Infrastructure never imports from services/ or api/
    - All external calls wrapped with retry/timeout/error mapping

Design Decisions:
    - Resilient wrappers over raw clients (ADR: ExMA single responsibility)
    - Each client is a process-wide singleton with init_*/close_* lifecycle hooks
      and a get_* FastAPI dependency (overridable in tests)
"""
