"""Services Layer — session lifecycle, accounts, purchases and the price catalog.

Invariants:
    - Services receive their stores by constructor injection (never import singletons)
    - Services raise ShopError subclasses; routes never translate errors themselves

Design Decisions:
    - One service per concern for locality (ADR: ExMA no god objects)
"""
