# SPDX-License-Identifier: BSD-2
""" This module contains the constant values used by TSS2 private key files:

- https://www.hansenpartnership.com/draft-bottomley-tpm2-keys.html, the ASN.1 key format.
- https://trustedcomputinggroup.org/resource/tpm-library-specification/. See Part 2 "Structures".

Along with helpers to go from friendly names to object identifiers and back.
"""
import re

from .internal.utils import _CLASS_STR_ATTRS_from_string

_oid_re = re.compile(r"^(0|[1-9][0-9]*)(\.(0|[1-9][0-9]*))+$")


class TSS2_FRIENDLY_ITER(type):
    """Metaclass to make object identifier classes iterable"""

    def __iter__(cls):
        """Returns an iterator over the registered identifiers in the class.

        Returns:
            (str): The dotted identifiers registered in the class.

        Example:
            list(TSS2_KEY_OID) -> ['2.23.133.10.1.3', '2.23.133.10.1.4', '2.23.133.10.1.5']
        """
        for value in cls._members_.values():
            yield value

    def __contains__(cls, value: str) -> bool:
        """Indicates if a class contains a registered identifier.

        Args:
            value (str): The dotted identifier to test for.

        Returns:
            (bool): True if the class contains the identifier, False otherwise.

        Example:
            "2.23.133.10.1.3" in TSS2_KEY_OID -> True
        """
        return value in cls._members_.values()


class TSS2_FRIENDLY_OID(str, metaclass=TSS2_FRIENDLY_ITER):
    """An object identifier in dotted notation with optional friendly names.

    Any syntactically valid identifier can be instantiated, the registered
    class attributes are only used for naming.

    Raises:
        ValueError: If value is not a dotted object identifier.
        TypeError: If value is not a str.
    """

    _FIXUP_MAP = {}
    _members_ = {}

    def __new__(cls, value: str):
        if not isinstance(value, str):
            raise TypeError(f'Expected value to be a str object, got: "{type(value)}"')
        value = str(value)
        if not _oid_re.match(value):
            raise ValueError(f'Invalid object identifier, got: "{value}"')
        arcs = [int(x) for x in value.split(".")]
        if arcs[0] > 2:
            raise ValueError(f"First arc must be 0, 1 or 2, got: {arcs[0]}")
        if arcs[0] < 2 and arcs[1] >= 40:
            raise ValueError(f"Second arc must be less than 40, got: {arcs[1]}")
        return super().__new__(cls, value)

    @staticmethod
    def _get_members(cls) -> dict:
        """Finds all identifiers defined at class level."""
        members = dict()
        for sc in cls.__mro__[1:]:
            if not issubclass(sc, TSS2_FRIENDLY_OID):
                break
            members.update(sc._get_members(sc))
        for name, value in vars(cls).items():
            if not isinstance(value, str) or name.startswith("_"):
                continue
            members[name] = value
        return members

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        members = TSS2_FRIENDLY_OID._get_members(cls)
        for name, value in members.items():
            fixed_value = cls(value)
            members[name] = fixed_value
            setattr(cls, name, fixed_value)
        cls._members_ = members

    @classmethod
    def parse(cls, value: str) -> "TSS2_FRIENDLY_OID":
        """Converts a friendly name or dotted identifier into an instance.

        Args:
            value (str): Either a member name, like "loadable" or "TSS2_KEY_OID.LOADABLE", or a dotted identifier.

        Returns:
            (TSS2_FRIENDLY_OID): The identifier.

        Raises:
            ValueError: If value is neither a member name nor a valid identifier.
            TypeError: If value is not a str.

        Example:
            TSS2_KEY_OID.parse("sealed") -> '2.23.133.10.1.5'
        """
        if not isinstance(value, str):
            raise TypeError(f'Expected value to be a str object, got: "{type(value)}"')
        if _oid_re.match(value):
            return cls(value)
        name = value
        prefix = f"{cls.__name__}."
        if name.upper().startswith(prefix.upper()):
            name = name[len(prefix) :]
        try:
            return cls(_CLASS_STR_ATTRS_from_string(cls, name, cls._FIXUP_MAP))
        except KeyError:
            raise ValueError(f'Could not convert friendly name to value, got: "{value}"')

    @classmethod
    def to_string(cls, value: str) -> str:
        """Converts an identifier into it's friendly name for that class.

        Args:
            value (str): The dotted identifier to convert to a name.

        Returns:
            (str): The name of the member registered for the identifier.

        Raises:
            ValueError: If the identifier is not registered.

        Example:
            TSS2_KEY_OID.to_string("2.23.133.10.1.3") -> 'TSS2_KEY_OID.LOADABLE'
        """
        for k, v in cls._members_.items():
            if v == value:
                return f"{cls.__name__}.{k}"
        raise ValueError(f"Could not match {value} to class {cls.__name__}")

    def friendly_name(self):
        """Returns the lowercase member name or None for unregistered identifiers.

        Example:
            TSS2_KEY_OID.SEALED.friendly_name() -> 'sealed'
        """
        for k, v in self.__class__._members_.items():
            if v == self:
                return k.lower()
        return None

    def __repr__(self) -> str:
        name = self.friendly_name()
        if name is None:
            return f"{self.__class__.__name__}({str.__repr__(self)})"
        return f"{self.__class__.__name__}.{name.upper()}"


class TSS2_KEY_OID(TSS2_FRIENDLY_OID):
    """The type of a TSS2 private key."""

    _FIXUP_MAP = {
        "LOADABLE_KEY": "LOADABLE",
        "IMPORTABLE_KEY": "IMPORTABLE",
        "SEALED_KEY": "SEALED",
    }

    LOADABLE = "2.23.133.10.1.3"
    IMPORTABLE = "2.23.133.10.1.4"
    SEALED = "2.23.133.10.1.5"


TSS2_PEM_TYPE = "TSS2 PRIVATE KEY"

TPM2_RH_OWNER = 0x40000001
TPM2_HR_PERSISTENT = 0x81000000
