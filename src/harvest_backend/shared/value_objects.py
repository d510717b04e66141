"""Immutable value objects shared across the domain layer."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from pydantic import BaseModel, Field, model_validator
from pydantic.config import ConfigDict

_CURRENCY_QUANTIZE = Decimal("0.01")

DEFAULT_CURRENCY = "SUI"


class Money(BaseModel):
    """Representation of monetary values with fixed precision."""

    model_config = ConfigDict(frozen=True)

    amount: Decimal = Field(
        ..., description="Monetary amount expressed in whole currency units."
    )
    currency: str = Field(
        default=DEFAULT_CURRENCY,
        min_length=3,
        max_length=3,
        description="Ticker of the settlement currency.",
    )

    @model_validator(mode="after")
    def _normalize_amount(self) -> Money:
        """Ensure the amount is rounded to two decimal places and currency uppercase."""
        quantized = self.amount.quantize(_CURRENCY_QUANTIZE, rounding=ROUND_HALF_UP)
        object.__setattr__(self, "amount", quantized)
        object.__setattr__(self, "currency", self.currency.upper())
        return self

    @classmethod
    def zero(cls, currency: str = DEFAULT_CURRENCY) -> Money:
        """Return a zero amount in *currency*."""
        return cls(amount=Decimal(0), currency=currency)

    @classmethod
    def of(cls, amount: Decimal | str | int, currency: str = DEFAULT_CURRENCY) -> Money:
        """Build a value from a literal amount."""
        return cls(amount=Decimal(str(amount)), currency=currency)

    @property
    def is_zero(self) -> bool:
        """Return ``True`` when the amount is exactly zero."""
        return self.amount == 0

    @property
    def is_negative(self) -> bool:
        """Return ``True`` when the amount is below zero."""
        return self.amount < 0

    def add(self, other: Money) -> Money:
        """Return a new instance with *other* added to this monetary value."""
        self._assert_same_currency(other)
        return Money(amount=self.amount + other.amount, currency=self.currency)

    def subtract(self, other: Money) -> Money:
        """Return a new instance with *other* subtracted from this monetary value."""
        self._assert_same_currency(other)
        return Money(amount=self.amount - other.amount, currency=self.currency)

    def multiply(self, factor: Decimal | int) -> Money:
        """Scale the amount by *factor* while preserving rounding rules."""
        decimal_factor = factor if isinstance(factor, Decimal) else Decimal(factor)
        new_amount = (self.amount * decimal_factor).quantize(
            _CURRENCY_QUANTIZE, rounding=ROUND_HALF_UP
        )
        return Money(amount=new_amount, currency=self.currency)

    def _assert_same_currency(self, other: Money) -> None:
        if self.currency != other.currency:
            msg = f"Currency mismatch: {self.currency} vs {other.currency}."
            raise ValueError(msg)


__all__ = ["DEFAULT_CURRENCY", "Money"]
