"""Pricer interface shared by every product family."""

from abc import ABC, abstractmethod
from datetime import date

from ..products import Product


class Pricer(ABC):
    """
    Valuation of one product against a fixed set of curves.

    A pricer holds references to the curves it reads and never caches
    curve values, so pv() always reflects the current curve state.
    """

    def __init__(self, product: Product, settle: date):
        self.product = product
        self.settle = settle

    @abstractmethod
    def pv(self) -> float:
        """Present value per unit notional at settle."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.product.description})"
