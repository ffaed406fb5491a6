"""
Shipping Service - Shipping quotes and order shipment
"""
import asyncio
import logging
import os
import sys
from enum import Enum
from typing import List, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from opentelemetry import trace, metrics
from opentelemetry.trace import Status, StatusCode
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.system_metrics import SystemMetricsInstrumentor

from quote import CostSource, LatencySimulator, QuoteGenerator, random_cost
from tracking import create_tracking_id, format_address
import telemetry

logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s [%(name)s] - %(message)s')
logger = logging.getLogger("shipping")

DEFAULT_PORT = "50051"
SERVICE_NAME = os.getenv("OTEL_SERVICE_NAME", "shippingservice")
RPC_SERVICE = "oteldemo.ShippingService"

MIN_ZIP_CODE = 10000
MAX_ZIP_CODE = 99999

INT32_MIN, INT32_MAX = -2**31, 2**31 - 1
INT64_MIN, INT64_MAX = -2**63, 2**63 - 1


class CartItem(BaseModel):
    productId: str = ""
    quantity: int = Field(0, ge=INT32_MIN, le=INT32_MAX)


class Address(BaseModel):
    streetAddress: str = ""
    city: str = ""
    state: str = ""
    country: str = ""
    zipCode: int = Field(0, ge=INT32_MIN, le=INT32_MAX)


class Money(BaseModel):
    currencyCode: str
    units: int = Field(ge=INT64_MIN, le=INT64_MAX)
    nanos: int = Field(ge=INT32_MIN, le=INT32_MAX)


class GetQuoteRequest(BaseModel):
    address: Optional[Address] = None
    items: List[CartItem] = []


class GetQuoteResponse(BaseModel):
    costUsd: Money


class ShipOrderRequest(BaseModel):
    address: Address = Address()
    items: List[CartItem] = []


class ShipOrderResponse(BaseModel):
    trackingId: str


class ServingStatus(str, Enum):
    UNKNOWN = "UNKNOWN"
    SERVING = "SERVING"
    NOT_SERVING = "NOT_SERVING"
    SERVICE_UNKNOWN = "SERVICE_UNKNOWN"


class HealthCheckRequest(BaseModel):
    service: str = ""


class HealthCheckResponse(BaseModel):
    status: ServingStatus


class ShippingService:
    """Handlers for the shipping RPCs and the health check protocol.

    The service holds no per-request state; tracer, meter and logger are the
    only shared handles and default to the process-wide ones.
    """

    def __init__(
        self,
        tracer: Optional[trace.Tracer] = None,
        meter: Optional[metrics.Meter] = None,
        log: Optional[logging.Logger] = None,
        cost_source: CostSource = random_cost,
        latency: LatencySimulator = asyncio.sleep,
    ):
        self.tracer = tracer or trace.get_tracer("shipping")
        self.logger = log or logger
        self.quotes = QuoteGenerator(tracer=self.tracer, cost_source=cost_source, latency=latency)

        meter = meter or metrics.get_meter("shipping")
        self.quotes_counter = meter.create_counter("app.shipping.quotes", unit="{quotes}")
        self.quote_amount_histogram = meter.create_histogram("app.shipping.quote.amount", unit="USD")
        self.orders_counter = meter.create_counter("app.shipping.orders", unit="{orders}")

    async def get_quote(self, request: GetQuoteRequest) -> GetQuoteResponse:
        current_span = trace.get_current_span()
        current_span.set_attributes({
            "rpc.system": "http",
            "rpc.service": RPC_SERVICE,
            "rpc.method": "GetQuote",
        })

        self.logger.info("[GetQuote] received request")
        try:
            # Cost does not depend on the cart, so a placeholder count is used.
            quote = await self.quotes.create_quote_from_count(0)
            current_span.set_attribute("app.quote.cost.total", str(quote))

            self.quotes_counter.add(1)
            self.quote_amount_histogram.record(quote.units + quote.subunits / 100)

            return GetQuoteResponse(costUsd=Money(**quote.to_money("USD")))
        finally:
            self.logger.info("[GetQuote] completed request")

    async def ship_order(self, request: ShipOrderRequest) -> ShipOrderResponse:
        with self.tracer.start_as_current_span("ship-order") as span:
            self.logger.info("[ShipOrder] received request")
            try:
                address = request.address
                base_address = format_address(address.streetAddress, address.city, address.state, address.zipCode)
                span.set_attributes({
                    "address": base_address,
                    "city": address.city,
                    "state": address.state,
                })

                # An invalid zip code is only reported on the span; the order still ships.
                zip_valid = MIN_ZIP_CODE <= address.zipCode <= MAX_ZIP_CODE
                if not zip_valid:
                    span.set_status(Status(StatusCode.ERROR, "zipcode is invalid"))
                    self.logger.warning(f"[ShipOrder] invalid zipcode {address.zipCode}")

                tracking_id = create_tracking_id(base_address)
                span.set_attribute("app.shipping.tracking.id", tracking_id)
                self.orders_counter.add(1, {"zipcode.valid": zip_valid})

                return ShipOrderResponse(trackingId=tracking_id)
            finally:
                self.logger.info("[ShipOrder] completed request")

    async def check(self, request: HealthCheckRequest) -> HealthCheckResponse:
        return HealthCheckResponse(status=ServingStatus.SERVING)

    async def watch(self, request: HealthCheckRequest):
        raise NotImplementedError("health check via Watch not implemented")


def create_app(service: Optional[ShippingService] = None) -> FastAPI:
    service = service or ShippingService()

    app = FastAPI(title="Shipping Service", version="1.0.0")
    app.state.shipping = service
    FastAPIInstrumentor.instrument_app(app)

    @app.exception_handler(NotImplementedError)
    async def unimplemented(request: Request, exc: NotImplementedError):
        return JSONResponse(status_code=501, content={"detail": str(exc)})

    @app.get("/health", response_model=HealthCheckResponse)
    async def health():
        return await service.check(HealthCheckRequest())

    @app.post("/health/check", response_model=HealthCheckResponse)
    async def health_check(body: Optional[HealthCheckRequest] = None):
        return await service.check(body or HealthCheckRequest())

    @app.post("/health/watch")
    async def health_watch(body: Optional[HealthCheckRequest] = None):
        return await service.watch(body or HealthCheckRequest())

    @app.post("/get-quote", response_model=GetQuoteResponse)
    async def get_quote(body: GetQuoteRequest):
        return await service.get_quote(body)

    @app.post("/ship-order", response_model=ShipOrderResponse)
    async def ship_order(body: ShipOrderRequest):
        return await service.ship_order(body)

    @app.on_event("startup")
    async def startup_event():
        SystemMetricsInstrumentor().instrument()
        logger.info("System metrics instrumentation started")
        logger.info(f"Shipping Service starting on port {os.getenv('PORT', DEFAULT_PORT)}")

    return app


app = create_app()


def main():
    try:
        telemetry.init_tracing(SERVICE_NAME)
    except telemetry.TracingConfigError:
        logger.exception("failed to initialize span exporter")
        sys.exit(1)

    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", DEFAULT_PORT)))


if __name__ == "__main__":
    main()
