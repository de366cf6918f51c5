"""Services Layer — imperative shell over the ORM and external gateways.

Invariants:
    - Every service function receives the AsyncSession and, where tenant data
      is touched, an ActorContext; tenant scoping happens here
    - Services raise QoroError subclasses, never HTTPException
"""
