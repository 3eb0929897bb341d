"""Barter lifecycle engine package.

Brands publish product offers, creators claim them, and the engine tracks each
claim through shipment and content review. The FastAPI app lives in
``barter_engine.main``.
"""

__all__: list[str] = []
