from __future__ import annotations

from typing import Any, Mapping


class AppError(Exception):
    """Base class for all tabular_io exceptions.

    Attributes
    ----------
    message:
        Human-readable error message.
    code:
        Stable, machine-friendly identifier for this error type
        (e.g. "parse_error", "not_found").
    cause:
        Optional underlying exception that triggered this error.
    context:
        Lightweight dictionary with extra debugging information
        (offending row, column, selector, path, ...).
    location:
        Optional string describing where the error occurred
        (e.g. "tabular_io.data.delimited.read_delimited").
    """

    # Subclasses override this to give themselves a stable default code.
    default_code: str = "app_error"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        cause: BaseException | None = None,
        context: Mapping[str, Any] | None = None,
        location: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code: str = code or self.default_code
        self.cause = cause
        self.context: dict[str, Any] = dict(context or {})
        self.location = location

        if cause is not None:
            self.__cause__ = cause  # type: ignore[assignment]

    def __str__(self) -> str:
        parts: list[str] = [f"[{self.code}] {self.message}"]

        if self.location:
            parts.append(f"(at {self.location})")

        if self.cause is not None:
            parts.append(f"(cause: {self.cause!r})")

        return " ".join(parts)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}("
            f"code={self.code!r}, "
            f"message={self.message!r}, "
            f"location={self.location!r}"
            ")"
        )

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable representation of the error."""
        data: dict[str, Any] = {
            "type": type(self).__name__,
            "code": self.code,
            "message": self.message,
        }

        if self.location:
            data["location"] = self.location

        if self.context:
            data["context"] = dict(self.context)

        if self.cause is not None:
            data["cause"] = {
                "type": type(self.cause).__name__,
                "repr": repr(self.cause),
            }

        return data

    def add_context(self, **extra: Any) -> AppError:
        """Add or update context fields on this error and return self.

        Handy when an error is re-raised higher in the stack, e.g. to attach
        the selector that ``load_all`` was processing.
        """
        self.context.update(extra)
        return self

    @classmethod
    def from_exception(
        cls,
        exc: BaseException,
        *,
        message: str | None = None,
        code: str | None = None,
        context: Mapping[str, Any] | None = None,
        location: str | None = None,
    ) -> AppError:
        """Construct an AppError (or subclass) from an existing exception.

        Examples
        --------
        >>> try:
        ...     workbook = openpyxl.load_workbook(path)
        ... except InvalidFileException as exc:
        ...     raise ParseError.from_exception(
        ...         exc,
        ...         message="Not a readable spreadsheet",
        ...         context={"path": str(path)},
        ...         location="tabular_io.data.spreadsheet.list_sheets",
        ...     ) from exc
        """
        base_message = message or str(exc) or cls.__name__
        return cls(
            base_message,
            code=code,
            cause=exc,
            context=context,
            location=location,
        )


class ConfigError(AppError):
    """Configuration-related errors (missing keys, invalid values, etc.)."""

    default_code = "config_error"


class DataError(AppError):
    """Data loading, validation, transformation or writing errors."""

    default_code = "data_error"


class ParseError(DataError):
    """Malformed input: ragged rows, empty files, corrupt workbooks or bundles."""

    default_code = "parse_error"


class NotFoundError(DataError):
    """A file, sheet, selector, column or bundle entry does not exist."""

    default_code = "not_found"


class CoercionError(DataError):
    """A value cannot be converted to the requested column type."""

    default_code = "coercion_error"


class NumericError(DataError):
    """Undefined arithmetic result, e.g. division by zero."""

    default_code = "numeric_error"


class ConnectionError(DataError):  # noqa: A001
    """A source or sink is unreachable, or a credential was rejected."""

    default_code = "connection_error"


__all__ = [
    "AppError",
    "ConfigError",
    "DataError",
    "ParseError",
    "NotFoundError",
    "CoercionError",
    "NumericError",
    "ConnectionError",
]
