"""
Page handlers.

    GET /            home       Landing page
    GET /products    products   Product listing; ?format=json for JSON
"""

from dataclasses import dataclass, asdict
from html import escape
from typing import List

from ..http import HTTPRequest, HTTPResponse, ResponseBuilder


@dataclass(frozen=True)
class Product:
    sku: str
    name: str
    price_cents: int

    @property
    def price(self) -> str:
        return f"{self.price_cents // 100}.{self.price_cents % 100:02d}"


CATALOGUE: List[Product] = [
    Product("FD-001", "Brass door knocker", 2450),
    Product("FD-002", "Oak door mat", 1899),
    Product("FD-003", "Smart lock", 12900),
]


def _page(title: str, body: str) -> str:
    return (
        "<!doctype html>\n"
        "<html lang=\"en\">\n"
        f"<head><meta charset=\"utf-8\"><title>{escape(title)}</title></head>\n"
        f"<body>\n{body}\n</body>\n"
        "</html>\n"
    )


def home(request: HTTPRequest) -> HTTPResponse:
    body = (
        "<h1>Welcome</h1>\n"
        "<p><a href=\"/products\">Browse products</a></p>"
    )
    return ResponseBuilder().html(_page("Home", body)).build()


def products(request: HTTPRequest) -> HTTPResponse:
    if request.get_query("format") == "json":
        items = [dict(asdict(p), price=p.price) for p in CATALOGUE]
        return ResponseBuilder().json({"products": items}).build()

    rows = "\n".join(
        f"  <li>{escape(p.name)} <small>({escape(p.sku)})</small> ${p.price}</li>"
        for p in CATALOGUE
    )
    return ResponseBuilder().html(_page("Products", f"<h1>Products</h1>\n<ul>\n{rows}\n</ul>")).build()
