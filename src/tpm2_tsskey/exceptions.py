# SPDX-License-Identifier: BSD-2
from typing import Optional


class TSSKeyError(ValueError):
    """TSSKeyError is the base class for all errors raised by the TSS2 key codec."""

    def __init__(self, reason: str):
        super(TSSKeyError, self).__init__(reason)
        self._reason = reason

    @property
    def reason(self):
        """str: A human readable description of the failure."""
        return self._reason


class MalformedError(TSSKeyError):
    """The input is not valid DER or does not match the TSS2 key structure."""


class UnsupportedFieldError(MalformedError):
    """A context tag appeared out of order, more than once or is unknown."""

    def __init__(self, reason: str, tag: Optional[int] = None):
        super(UnsupportedFieldError, self).__init__(reason)
        self._tag = tag

    @property
    def tag(self):
        """int: The offending context tag number, None if unknown."""
        return self._tag


class TrailingDataError(TSSKeyError):
    """The outer SEQUENCE was parsed but more bytes follow it."""

    def __init__(self, offset: int, trailing: int):
        super(TrailingDataError, self).__init__(
            f"{trailing} bytes of trailing data after offset {offset}"
        )
        self._offset = offset
        self._trailing = trailing

    @property
    def offset(self):
        """int: The offset where the outer SEQUENCE ends."""
        return self._offset

    @property
    def trailing(self):
        """int: The number of extra bytes."""
        return self._trailing


class InvalidArgumentError(TSSKeyError):
    """An API was called with an argument it can not work with."""
