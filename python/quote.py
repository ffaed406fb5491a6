"""
Quote - Shipping cost model and quote generation
"""
import asyncio
import logging
import math
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from opentelemetry import trace

logger = logging.getLogger("shipping.quote")

NANOS_PER_CENT = 10_000_000

COUNT_DELAY_SECONDS = 0.1
VALUE_DELAY_SECONDS = 1 / 3

CostSource = Callable[[], float]
LatencySimulator = Callable[[float], Awaitable[None]]


def random_cost() -> float:
    return float(random.randint(0, 99))


@dataclass(frozen=True)
class Quote:
    """A non-negative currency value split into whole units and cents."""

    units: int
    subunits: int

    def __post_init__(self):
        if self.units < 0:
            raise ValueError(f"units must be non-negative, got {self.units}")
        if not 0 <= self.subunits <= 99:
            raise ValueError(f"subunits must be within [0, 99], got {self.subunits}")

    @classmethod
    def from_value(cls, value: float) -> "Quote":
        # Fraction is truncated, never rounded: 3.567 -> $3.56
        if value < 0:
            raise ValueError(f"quote value must be non-negative, got {value}")
        whole = math.floor(value)
        return cls(int(whole), int(math.trunc((value - whole) * 100)))

    def __str__(self) -> str:
        # Cents are not zero-padded: Quote(3, 5) renders as "$3.5"
        return f"${self.units}.{self.subunits}"

    def to_money(self, currency_code: str = "USD") -> dict:
        return {
            "currencyCode": currency_code,
            "units": self.units,
            "nanos": self.subunits * NANOS_PER_CENT,
        }


class QuoteGenerator:
    def __init__(
        self,
        tracer: Optional[trace.Tracer] = None,
        cost_source: CostSource = random_cost,
        latency: LatencySimulator = asyncio.sleep,
    ):
        self.tracer = tracer or trace.get_tracer("shipping")
        self.cost_source = cost_source
        self.latency = latency

    async def create_quote_from_count(self, count: int) -> Quote:
        # The item count is recorded but does not affect the cost.
        with self.tracer.start_as_current_span("create-quote-from-count", kind=trace.SpanKind.INTERNAL) as span:
            span.set_attribute("app.quote.items.count", count)
            await self.latency(COUNT_DELAY_SECONDS)
            return await self.create_quote_from_value(self.cost_source())

    async def create_quote_from_value(self, value: float) -> Quote:
        with self.tracer.start_as_current_span("create-quote-from-value", kind=trace.SpanKind.INTERNAL) as span:
            await self.latency(VALUE_DELAY_SECONDS)
            quote = Quote.from_value(value)
            span.set_attribute("app.quote.cost.total", str(quote))
            logger.info(f"Quote calculated: {quote}")
            return quote
