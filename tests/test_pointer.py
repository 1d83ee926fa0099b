import pytest

from writing_assistant.pointer import CallablePointerResolver, GridPointerResolver


def test_grid_resolver_picks_nearest_caret():
    resolver = GridPointerResolver("hello world", char_width=10, line_height=20)
    assert resolver.resolve(0, 0) == 0
    assert resolver.resolve(52, 5) == 5
    assert resolver.resolve(110, 0) == 11


def test_grid_resolver_handles_newlines_and_wrapping():
    resolver = GridPointerResolver("ab\ncd", char_width=10, line_height=20)
    assert resolver.caret_point(3) == (0, 20)
    assert resolver.resolve(10, 21) == 4

    wrapped = GridPointerResolver("abcdef", char_width=10, line_height=20, columns=3)
    assert wrapped.caret_point(4) == (10, 20)


def test_grid_resolver_returns_none_outside_bounds():
    resolver = GridPointerResolver("hello", char_width=10, line_height=20)
    assert resolver.bounds == (0, 0, 50, 20)
    assert resolver.resolve(200, 0) is None
    assert resolver.resolve(0, -30) is None


def test_grid_resolver_respects_tolerance():
    resolver = GridPointerResolver(
        "hello", char_width=10, line_height=20, margin_x=500, tolerance=30
    )
    assert resolver.resolve(75, 0) == 5
    assert resolver.resolve(90, 0) is None


def test_grid_resolver_rejects_bad_metrics():
    with pytest.raises(ValueError):
        GridPointerResolver("text", char_width=0)


def test_callable_resolver_delegates():
    resolver = CallablePointerResolver(lambda x, y: None if x < 0 else int(x))
    assert resolver.resolve(3.7, 0) == 3
    assert resolver.resolve(-1, 0) is None
