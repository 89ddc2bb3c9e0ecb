"""
Calibration tenors.

A CurveTenor is one calibration instrument: a product, its market quote,
the handler that turns the quote into a target price, a fit weight and
the curve date its solved value anchors.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from typing import Iterator, List, Optional, Union

import numpy as np

from ..conventions import year_fraction


class QuoteHandler(ABC):
    """Converts a market quote into the price a product must reach."""

    def apply(self, product, quote: float) -> None:
        """Push the quote into the product's terms (no-op by default)."""

    @abstractmethod
    def market_pv(self, product, quote: float) -> float:
        """Target price implied by the quote."""


class PriceQuoteHandler(QuoteHandler):
    """The quote is the price itself (spot, futures)."""

    def market_pv(self, product, quote: float) -> float:
        return quote

    def __repr__(self) -> str:
        return "PriceQuoteHandler()"


class ParQuoteHandler(QuoteHandler):
    """
    The quote is a rate, spread or price written onto the product, and the
    product is worth par_value when quoted at market.

    Args:
        attribute: Product field receiving the quote (e.g. "coupon", "premium")
        par_value: Price of the product at its market quote
    """

    def __init__(self, attribute: str, par_value: float = 0.0):
        self.attribute = attribute
        self.par_value = par_value

    def apply(self, product, quote: float) -> None:
        if not hasattr(product, self.attribute):
            raise ValueError(f"{type(product).__name__} has no quote field '{self.attribute}'")
        setattr(product, self.attribute, quote)

    def market_pv(self, product, quote: float) -> float:
        return self.par_value

    def __repr__(self) -> str:
        return f"ParQuoteHandler({self.attribute!r}, {self.par_value})"


class ZeroYieldQuoteHandler(QuoteHandler):
    """Continuously compounded zero yield: target price exp(-y * t)."""

    def market_pv(self, product, quote: float) -> float:
        t = year_fraction(product.effective, product.maturity, product.day_count)
        return float(np.exp(-quote * t))

    def __repr__(self) -> str:
        return "ZeroYieldQuoteHandler()"


@dataclass
class CurveTenor:
    """
    One calibration instrument.

    Attributes:
        name: Tenor name (e.g. "5Y")
        product: Product terms
        market_quote: Current market quote
        quote_handler: Quote to price conversion
        weight: Fit weight, 0 disables the tenor
        curve_date: Date the solved value anchors (defaults to maturity)
        model_pv: Price achieved by the last fit
        original_quote: Quote at construction, used to propagate quote moves
    """
    name: str
    product: object
    market_quote: float
    quote_handler: QuoteHandler = field(default_factory=PriceQuoteHandler)
    weight: float = 1.0
    curve_date: Optional[date] = None
    model_pv: float = float("nan")
    original_quote: Optional[float] = None

    def __post_init__(self):
        if self.weight < 0:
            raise ValueError(f"Tenor {self.name} has negative weight {self.weight}")
        if self.curve_date is None:
            self.curve_date = self.product.maturity
        if self.original_quote is None:
            self.original_quote = self.market_quote
        self.quote_handler.apply(self.product, self.market_quote)

    def set_quote(self, quote: float) -> None:
        """Update the market quote and the product terms it drives."""
        self.market_quote = quote
        self.quote_handler.apply(self.product, quote)

    @property
    def market_pv(self) -> float:
        return self.quote_handler.market_pv(self.product, self.market_quote)

    @property
    def is_active(self) -> bool:
        return self.weight > 0


class CurveTenorCollection:
    """Ordered tenors of a calibrated curve, addressable by index or name."""

    def __init__(self, tenors: Optional[List[CurveTenor]] = None):
        self._tenors: List[CurveTenor] = []
        for tenor in tenors or []:
            self.add(tenor)

    def add(self, tenor: CurveTenor) -> None:
        if self.contains(tenor.name):
            raise ValueError(f"Duplicate tenor name: {tenor.name}")
        self._tenors.append(tenor)

    def sort(self) -> None:
        """Sort by curve date; equal dates keep insertion order."""
        self._tenors.sort(key=lambda t: t.curve_date)

    def contains(self, name: str) -> bool:
        return any(t.name == name for t in self._tenors)

    def index_of(self, name: str) -> int:
        for i, t in enumerate(self._tenors):
            if t.name == name:
                return i
        raise KeyError(f"No tenor named {name}")

    def names(self) -> List[str]:
        return [t.name for t in self._tenors]

    def active(self) -> List[CurveTenor]:
        """Tenors with a non-zero weight."""
        return [t for t in self._tenors if t.is_active]

    def __getitem__(self, key: Union[int, str]) -> CurveTenor:
        if isinstance(key, str):
            return self._tenors[self.index_of(key)]
        return self._tenors[key]

    def __len__(self) -> int:
        return len(self._tenors)

    def __iter__(self) -> Iterator[CurveTenor]:
        return iter(self._tenors)

    def __repr__(self) -> str:
        return f"CurveTenorCollection({self.names()})"


__all__ = [
    "QuoteHandler",
    "PriceQuoteHandler",
    "ParQuoteHandler",
    "ZeroYieldQuoteHandler",
    "CurveTenor",
    "CurveTenorCollection",
]
