import httpx
import pytest
import pytest_asyncio
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from shipping import ShippingService, create_app


class RecordingLatency:
    """Latency simulator that records requested delays instead of sleeping."""

    def __init__(self):
        self.delays = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def span_exporter():
    return InMemorySpanExporter()


@pytest.fixture
def tracer(span_exporter):
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    return provider.get_tracer("shipping-test")


@pytest.fixture
def latency():
    return RecordingLatency()


@pytest.fixture
def service(tracer, latency):
    return ShippingService(tracer=tracer, cost_source=lambda: 42.0, latency=latency)


@pytest_asyncio.fixture
async def client(service):
    transport = httpx.ASGITransport(app=create_app(service))
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
