# SPDX-License-Identifier: BSD-2
import logging
from typing import Dict, List, NamedTuple, Optional, Tuple

from asn1crypto import parser

from ..exceptions import MalformedError, InvalidArgumentError

logger = logging.getLogger(__name__)

CLASS_UNIVERSAL = 0
CLASS_CONTEXT = 2

METHOD_PRIMITIVE = 0
METHOD_CONSTRUCTED = 1

TAG_BOOLEAN = 1
TAG_INTEGER = 2
TAG_OCTET_STRING = 4
TAG_OBJECT_IDENTIFIER = 6
TAG_UTF8_STRING = 12
TAG_SEQUENCE = 16

_universal_names = {
    TAG_BOOLEAN: "BOOLEAN",
    TAG_INTEGER: "INTEGER",
    TAG_OCTET_STRING: "OCTET STRING",
    TAG_OBJECT_IDENTIFIER: "OBJECT IDENTIFIER",
    TAG_UTF8_STRING: "UTF8String",
    TAG_SEQUENCE: "SEQUENCE",
}


class _Element(NamedTuple):
    """A single DER TLV, as returned by asn1crypto.parser."""

    class_: int
    method: int
    tag: int
    header: bytes
    contents: bytes

    def is_universal(self, tag: int, method: int = METHOD_PRIMITIVE) -> bool:
        return (
            self.class_ == CLASS_UNIVERSAL and self.tag == tag and self.method == method
        )

    def is_context(self) -> bool:
        return self.class_ == CLASS_CONTEXT

    def describe(self) -> str:
        if self.class_ == CLASS_UNIVERSAL:
            return _universal_names.get(self.tag, f"universal tag {self.tag}")
        if self.class_ == CLASS_CONTEXT:
            return f"[{self.tag}]"
        return f"class {self.class_} tag {self.tag}"


def _CLASS_STR_ATTRS_from_string(
    cls: object, str_value: str, fixup_map: Optional[Dict[str, str]] = None
) -> str:
    """
    Given a class, lookup str attributes by name and return that attribute value.
    :param cls: The class to search.
    :param str_value: The key for the attribute in the class.
    """

    friendly = {
        key.upper(): value
        for (key, value) in vars(cls).items()
        if isinstance(value, str) and not key.startswith("_")
    }

    if fixup_map is not None and str_value.upper() in fixup_map:
        str_value = fixup_map[str_value.upper()]

    return friendly[str_value.upper()]


def _header_len(tag: int, length: int) -> int:
    """Returns the size of a minimal DER header for tag and content length."""
    size = 1
    if tag >= 31:
        while tag:
            size += 1
            tag >>= 7
    size += 1
    if length >= 0x80:
        size += (length.bit_length() + 7) // 8
    return size


def _read_element(data: bytes, offset: int = 0) -> Tuple[_Element, int]:
    """Parse the DER element starting at offset.

    Args:
        data (bytes): The buffer to parse.
        offset (int): Where in data the element starts.

    Returns:
        The parsed element and the offset right after it.

    Raises:
        MalformedError: If the element is truncated or not DER encoded.
    """
    try:
        class_, method, tag, header, contents, trailer = parser.parse(data[offset:])
    except (ValueError, TypeError) as e:
        raise MalformedError(f"invalid DER at offset {offset}: {e}") from e
    if trailer:
        raise MalformedError(f"indefinite length encoding at offset {offset}")
    if len(header) != _header_len(tag, len(contents)):
        raise MalformedError(f"non minimal length encoding at offset {offset}")
    el = _Element(class_, method, tag, header, contents)
    return el, offset + len(header) + len(contents)


def _read_elements(data: bytes) -> List[_Element]:
    """Split the contents of a constructed element into its children."""
    elements = list()
    offset = 0
    while offset < len(data):
        el, offset = _read_element(data, offset)
        elements.append(el)
    return elements


def _is_minimal_integer(contents: bytes) -> bool:
    """Checks that INTEGER contents carry no redundant leading byte."""
    if len(contents) == 0:
        return False
    if len(contents) == 1:
        return True
    if contents[0] == 0x00 and contents[1] < 0x80:
        return False
    if contents[0] == 0xFF and contents[1] >= 0x80:
        return False
    return True


def _is_minimal_oid(contents: bytes) -> bool:
    """Checks that OBJECT IDENTIFIER contents hold complete, unpadded subidentifiers."""
    if len(contents) == 0 or contents[-1] & 0x80:
        return False
    start = True
    for b in contents:
        if start and b == 0x80:
            return False
        start = not b & 0x80
    return True


def _size_prefix(data: bytes) -> bytes:
    """Prefix data with the big endian 16 bit size used by TPM2B structures."""
    if len(data) > 0xFFFF:
        raise InvalidArgumentError(f"size of {len(data)} does not fit into a TPM2B")
    return len(data).to_bytes(2, "big") + data
