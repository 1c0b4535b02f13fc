import threading

import pytest

from kindtool.errors import (
    Aggregate,
    KindError,
    aggregate_concurrent,
    aggregate_errors,
    new,
    new_aggregate,
    stack_trace,
    until_error_concurrent,
    with_stack,
    wrap,
)


def _raiser(err):
    def func():
        raise err

    return func


def test_errors_wrapped_aggregate():
    errs = [new("foo"), new("bar")]
    err = wrap(new_aggregate(errs), "baz: quux")
    result = aggregate_errors(err)
    assert result == errs
    assert all(a is b for a, b in zip(result, errs))


def test_errors_nil():
    assert aggregate_errors(None) is None


def test_errors_without_aggregate():
    assert aggregate_errors(wrap(new("foo"), "bar")) is None


def test_new_aggregate_flattens_nested_aggregates():
    a, b, c = new("a"), new("b"), new("c")
    result = aggregate_errors(new_aggregate([a, Aggregate([b, c])]))
    assert result == [a, b, c]


def test_new_aggregate_empty_is_none():
    assert new_aggregate([]) is None
    assert new_aggregate([None]) is None


def test_new_aggregate_reduces_single_error():
    a = new("a")
    err = new_aggregate([None, a])
    assert err.__cause__ is a
    assert str(err) == "a"
    assert aggregate_errors(err) is None


def test_aggregate_message_deduplicates():
    agg = Aggregate([new("foo"), new("bar"), new("foo")])
    assert str(agg) == "[foo, bar]"
    assert str(Aggregate([new("foo"), new("foo")])) == "foo"


def test_wrap_message_and_cause():
    inner = new("foo")
    err = wrap(inner, "bar")
    assert str(err) == "bar: foo"
    assert err.__cause__ is inner


def test_wrap_and_with_stack_of_none():
    assert wrap(None, "message") is None
    assert with_stack(None) is None


def test_with_stack_keeps_message():
    inner = ValueError("boom")
    err = with_stack(inner)
    assert str(err) == "boom"
    assert err.cause is inner


def test_stack_trace_wrapped_chain():
    err = new("foo")
    expected = err.stack
    result = stack_trace(wrap(wrap(err, "bar"), "baz"))
    assert result is expected


def test_stack_trace_nil():
    assert stack_trace(None) is None


def test_stack_trace_points_at_caller():
    err = new("foo")
    assert err.stack[-1].name == "test_stack_trace_points_at_caller"


def test_until_error_concurrent_first_to_return_error():
    expected = new("first")
    wait = threading.Event()

    def slow():
        wait.wait(5)
        raise new("second")

    with pytest.raises(KindError) as info:
        until_error_concurrent([slow, _raiser(expected)])
    wait.set()
    assert info.value is expected


def test_until_error_concurrent_nil():
    assert until_error_concurrent([lambda: None]) is None


def test_aggregate_concurrent_all_errors_returned():
    first = new("first")
    second = new("second")
    with pytest.raises(KindError) as info:
        aggregate_concurrent([_raiser(first), _raiser(second)])
    assert aggregate_errors(info.value) == [first, second]


def test_aggregate_concurrent_one_error():
    expected = new("foo")
    with pytest.raises(KindError) as info:
        aggregate_concurrent([_raiser(expected)])
    assert info.value is expected


def test_aggregate_concurrent_nil():
    assert aggregate_concurrent([lambda: None]) is None