"""Classified failures raised by the query pipeline and the CRUD dispatcher.

Every error carries a stable ``kind`` (the class name) and a human-readable
message. Callers at the request boundary map ``status_code`` onto their own
transport; the core never formats responses itself.
"""

from typing import Any, Dict, Optional


class RowgateError(Exception):
    """Base class for all classified rowgate failures."""

    status_code = 400

    def __init__(self, message: str, *, attribute: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.attribute = attribute

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "message": self.message}


class InvalidValue(RowgateError):
    """A request value could not be coerced to the column's declared type."""


class UnsupportedOperator(RowgateError):
    """An operator was used on a column type that does not support it."""


class NonQueryableAttribute(RowgateError):
    """A filter referenced a column marked ``queryable: false``."""


class InvalidSortAttribute(RowgateError):
    pass


class InvalidSelectAttribute(RowgateError):
    pass


class UnknownOperand(RowgateError):
    pass


class MissingId(RowgateError):
    pass


class NoPrimaryKey(RowgateError):
    pass


class MultiplePrimaryKeys(RowgateError):
    pass


class MissingField(RowgateError):
    pass


class MisconfiguredAcl(RowgateError):
    """The entity has ACL enabled but lacks one of the four ACL columns."""

    status_code = 500


class InsertNotAllowed(RowgateError):
    status_code = 403


class NotFound(RowgateError):
    status_code = 404


class UnknownEntity(RowgateError):
    status_code = 404


class StoreError(RowgateError):
    """Wraps a failure raised by the underlying store.

    The original exception is available as ``cause`` and ``__cause__``.
    """

    status_code = 500

    def __init__(self, message: str, *, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause
