from __future__ import annotations

from typing import Any, Callable, Protocol, runtime_checkable


Formatter = Callable[[Any], str]


@runtime_checkable
class ServiceValue(Protocol):
    """The three operations every published path is backed by."""

    def get_value(self) -> Any: ...
    def get_text(self) -> str: ...
    def set_value(self, value: Any) -> None: ...


def default_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


class AnyValue:
    """Holds exactly the last value it was given."""

    def __init__(self, value: Any = None) -> None:
        self._value = value

    def get_value(self) -> Any:
        return self._value

    def get_text(self) -> str:
        return default_text(self._value)

    def set_value(self, value: Any) -> None:
        self._value = value


class FormatterValue:
    """A raw value paired with the function that renders its text.

    `formatter` may be a callable or a printf-style format string such as
    ``"%.2f V"``. Without one the value renders like `AnyValue` does.
    """

    def __init__(self, value: Any = None, formatter: Formatter | str | None = None) -> None:
        self._value = value
        self._formatter = _coerce_formatter(formatter)

    @property
    def formatter(self) -> Formatter:
        return self._formatter

    def get_value(self) -> Any:
        return self._value

    def get_text(self) -> str:
        return self._formatter(self._value)

    def set_value(self, value: Any) -> None:
        self._value = value


class DelegatingValue:
    """Forwards to a caller-supplied holder."""

    def __init__(self, inner: ServiceValue) -> None:
        self._inner = inner

    @property
    def inner(self) -> ServiceValue:
        return self._inner

    def get_value(self) -> Any:
        return self._inner.get_value()

    def get_text(self) -> str:
        return str(self._inner.get_text())

    def set_value(self, value: Any) -> None:
        self._inner.set_value(value)


def _coerce_formatter(formatter: Formatter | str | None) -> Formatter:
    if formatter is None:
        return default_text
    if isinstance(formatter, str):
        fmt = formatter
        return lambda value: fmt % (value,)
    if not callable(formatter):
        raise TypeError(f"formatter must be callable or a format string, got {type(formatter).__name__}")
    return formatter


def new_formatter_value(value: Any, formatter: Formatter | str | None = None) -> FormatterValue:
    return FormatterValue(value, formatter)
