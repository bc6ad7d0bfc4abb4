"""Exception hierarchy shared by the query model, engine and client."""


class QueryDeskError(Exception):
    """Base class for all QueryDesk errors."""


# ---------------------------------------------------------------------------
# Validation -- rule violations, surfaced to the user, nothing attempted
# ---------------------------------------------------------------------------


class ValidationError(QueryDeskError):
    pass


class FilterError(ValidationError):
    pass


class MissingField(FilterError):
    pass


class MissingValue(FilterError):
    pass


class UnknownField(FilterError):
    pass


class IncompatibleOperator(FilterError):
    pass


class UnparsableValue(FilterError):
    pass


class NoSuchFilter(FilterError):
    pass


class BuildError(ValidationError):
    pass


class NoColumnsSelected(BuildError):
    pass


class NoTableSelected(BuildError):
    pass


class EmptySql(BuildError):
    pass


class InvalidSort(BuildError):
    pass


class InvalidPageSize(BuildError):
    pass


class MissingName(ValidationError):
    pass


# ---------------------------------------------------------------------------
# Empty input -- blocked before any request is issued
# ---------------------------------------------------------------------------


class EmptyInputError(QueryDeskError):
    pass


class NothingToExport(EmptyInputError):
    pass


class EmptyTemplate(EmptyInputError):
    pass


# ---------------------------------------------------------------------------
# Transport -- collaborator unreachable or returned a non-2xx status
# ---------------------------------------------------------------------------


class TransportError(QueryDeskError):
    """The execution collaborator failed; no retry is attempted."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
