import logging

from opentelemetry import trace

from eventasap.core.observability import TraceContextFilter


def make_record():
    return logging.LogRecord("eventasap.test", logging.INFO, __file__, 1, "hello", None, None)


def test_record_outside_span_has_no_trace_id():
    record = make_record()
    assert TraceContextFilter().filter(record) is True
    assert record.trace_id is None


def test_record_inside_span_carries_trace_id():
    tracer = trace.get_tracer(__name__)
    with tracer.start_as_current_span("unit") as span:
        record = make_record()
        TraceContextFilter().filter(record)
        expected = span.get_span_context()
    if expected.is_valid:
        assert record.trace_id == format(expected.trace_id, "032x")
    else:
        assert record.trace_id is None
