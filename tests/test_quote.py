import pytest

from quote import NANOS_PER_CENT, Quote, QuoteGenerator


def test_from_value_truncates_fraction():
    quote = Quote.from_value(3.567)
    assert quote.units == 3
    assert quote.subunits == 56


def test_from_value_integral_value_has_no_cents():
    assert Quote.from_value(42.0) == Quote(42, 0)


def test_from_value_half():
    assert Quote.from_value(3.5) == Quote(3, 50)


def test_render_does_not_pad_cents():
    assert str(Quote(3, 5)) == "$3.5"
    assert str(Quote(12, 75)) == "$12.75"


def test_to_money_scales_cents_to_nanos():
    money = Quote(7, 25).to_money("USD")
    assert money == {"currencyCode": "USD", "units": 7, "nanos": 250_000_000}
    assert Quote(0, 99).to_money()["nanos"] == 99 * NANOS_PER_CENT


@pytest.mark.parametrize("units,subunits", [(-1, 0), (1, 100), (1, -1)])
def test_quote_rejects_out_of_range_parts(units, subunits):
    with pytest.raises(ValueError):
        Quote(units, subunits)


def test_from_value_rejects_negative():
    with pytest.raises(ValueError):
        Quote.from_value(-0.5)


@pytest.mark.asyncio
async def test_create_quote_from_count_nests_spans(tracer, span_exporter, latency):
    generator = QuoteGenerator(tracer=tracer, cost_source=lambda: 17.0, latency=latency)

    quote = await generator.create_quote_from_count(3)

    assert quote == Quote(17, 0)
    assert latency.delays == pytest.approx([0.1, 1 / 3])

    spans = {span.name: span for span in span_exporter.get_finished_spans()}
    outer = spans["create-quote-from-count"]
    inner = spans["create-quote-from-value"]
    assert inner.parent.span_id == outer.context.span_id
    assert outer.attributes["app.quote.items.count"] == 3
    assert inner.attributes["app.quote.cost.total"] == "$17.0"


@pytest.mark.asyncio
async def test_default_cost_source_stays_in_range(latency):
    generator = QuoteGenerator(latency=latency)

    for _ in range(50):
        quote = await generator.create_quote_from_count(1)
        assert 0 <= quote.units <= 99
        assert quote.subunits == 0
