"""
=============================================================================
HANDLERS MODULE
=============================================================================

A handler is a function from a parsed request to a response:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    REQUEST → HANDLER → RESPONSE                     │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    Request                 Handler                 Response         │
    │   ┌─────────┐           ┌─────────┐           ┌─────────┐          │
    │   │ GET     │           │         │           │ 200 OK  │          │
    │   │ /prod-  │ ────────▶ │ Logic   │ ────────▶ │         │          │
    │   │ ucts    │           │         │           │ <html>  │          │
    │   └─────────┘           └─────────┘           └─────────┘          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Handlers may raise. The panic-recovery middleware turns the exception
into a 500, so handlers contain only their own logic.

=============================================================================
"""

from .pages import home, products, Product, CATALOGUE

__all__ = [
    "home",
    "products",
    "Product",
    "CATALOGUE",
]
