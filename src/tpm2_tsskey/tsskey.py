# SPDX-License-Identifier: BSD-2
"""DER and PEM encoding of TSS2 private keys.

The ASN.1 module, as used by tpm2-tss-engine, tpm2-openssl and openssl_tpm2_engine::

    TPMPolicy ::= SEQUENCE {
        commandCode   [0] EXPLICIT INTEGER,
        commandPolicy [1] EXPLICIT OCTET STRING
    }

    TPMAuthPolicy ::= SEQUENCE {
        name    [0] EXPLICIT UTF8String OPTIONAL,
        policy  [1] EXPLICIT SEQUENCE OF TPMPolicy
    }

    TPMKey ::= SEQUENCE {
        type        OBJECT IDENTIFIER,
        emptyAuth   [0] EXPLICIT BOOLEAN OPTIONAL,
        policy      [1] EXPLICIT SEQUENCE OF TPMPolicy OPTIONAL,
        secret      [2] EXPLICIT OCTET STRING OPTIONAL,
        authPolicy  [3] EXPLICIT SEQUENCE OF TPMAuthPolicy OPTIONAL,
        parent      INTEGER,
        pubkey      OCTET STRING,
        privkey     OCTET STRING
    }
"""
import logging
from typing import Dict, List, Optional, Tuple, Union

from asn1crypto import pem
from asn1crypto.core import (
    Boolean,
    Integer,
    ObjectIdentifier,
    OctetString,
    Sequence,
    SequenceOf,
    UTF8String,
)

from . import config
from .constants import TSS2_PEM_TYPE
from .exceptions import (
    InvalidArgumentError,
    MalformedError,
    TrailingDataError,
    UnsupportedFieldError,
)
from .internal.utils import (
    METHOD_CONSTRUCTED,
    METHOD_PRIMITIVE,
    TAG_BOOLEAN,
    TAG_INTEGER,
    TAG_OBJECT_IDENTIFIER,
    TAG_OCTET_STRING,
    TAG_SEQUENCE,
    TAG_UTF8_STRING,
    _Element,
    _is_minimal_integer,
    _is_minimal_oid,
    _read_element,
    _read_elements,
)
from .types import TPMAuthPolicy, TPMKey, TPMPolicy

logger = logging.getLogger(__name__)

TAG_EMPTY_AUTH = 0
TAG_POLICY = 1
TAG_SECRET = 2
TAG_AUTH_POLICY = 3

# context tag -> (universal tag, method, field name)
_optional_fields = {
    TAG_EMPTY_AUTH: (TAG_BOOLEAN, METHOD_PRIMITIVE, "empty_auth"),
    TAG_POLICY: (TAG_SEQUENCE, METHOD_CONSTRUCTED, "policy"),
    TAG_SECRET: (TAG_OCTET_STRING, METHOD_PRIMITIVE, "secret"),
    TAG_AUTH_POLICY: (TAG_SEQUENCE, METHOD_CONSTRUCTED, "auth_policy"),
}

_required_fields = (
    (TAG_INTEGER, "parent"),
    (TAG_OCTET_STRING, "public_key"),
    (TAG_OCTET_STRING, "private_key"),
)


class _tpmpolicy_der(Sequence):
    _fields = [
        ("command_code", Integer, {"explicit": 0}),
        ("command_policy", OctetString, {"explicit": 1}),
    ]


class _tpmpolicies_der(SequenceOf):
    _child_spec = _tpmpolicy_der


class _tpmauthpolicy_der(Sequence):
    _fields = [
        ("name", UTF8String, {"explicit": 0, "optional": True}),
        ("policy", _tpmpolicies_der, {"explicit": 1}),
    ]


class _tpmauthpolicies_der(SequenceOf):
    _child_spec = _tpmauthpolicy_der


class _tpmkey_der(Sequence):
    _fields = [
        ("type", ObjectIdentifier),
        ("empty_auth", Boolean, {"explicit": TAG_EMPTY_AUTH, "optional": True}),
        ("policy", _tpmpolicies_der, {"explicit": TAG_POLICY, "optional": True}),
        ("secret", OctetString, {"explicit": TAG_SECRET, "optional": True}),
        (
            "auth_policy",
            _tpmauthpolicies_der,
            {"explicit": TAG_AUTH_POLICY, "optional": True},
        ),
        ("parent", Integer),
        ("public_key", OctetString),
        ("private_key", OctetString),
    ]


def _unwrap(el: _Element, utag: int, method: int, name: str) -> _Element:
    """Return the single element inside an explicit tag."""
    if el.method != METHOD_CONSTRUCTED:
        raise MalformedError(f"explicit tag [{el.tag}] for {name} must be constructed")
    inner = _read_elements(el.contents)
    if len(inner) != 1:
        raise MalformedError(
            f"explicit tag [{el.tag}] for {name} must contain exactly one element, got {len(inner)}"
        )
    value = inner[0]
    if not value.is_universal(utag, method):
        raise MalformedError(f"{name} must not be a {value.describe()}")
    return value


def _check_policies(el: _Element, name: str):
    """Walk a SEQUENCE OF TPMPolicy, every element must be DER."""
    for policy in _read_elements(el.contents):
        if not policy.is_universal(TAG_SEQUENCE, METHOD_CONSTRUCTED):
            raise MalformedError(f"{name} entry must not be a {policy.describe()}")
        fields = _read_elements(policy.contents)
        tags = [f.tag for f in fields if f.is_context()]
        if len(fields) != 2 or tags != [0, 1]:
            raise MalformedError(
                f"{name} entry must hold commandCode [0] and commandPolicy [1]"
            )
        cc = _unwrap(fields[0], TAG_INTEGER, METHOD_PRIMITIVE, "command_code")
        if not _is_minimal_integer(cc.contents):
            raise MalformedError("command_code is not a minimally encoded INTEGER")
        _unwrap(fields[1], TAG_OCTET_STRING, METHOD_PRIMITIVE, "command_policy")


def _check_auth_policies(el: _Element):
    """Walk a SEQUENCE OF TPMAuthPolicy, every element must be DER."""
    for auth_policy in _read_elements(el.contents):
        if not auth_policy.is_universal(TAG_SEQUENCE, METHOD_CONSTRUCTED):
            raise MalformedError(
                f"auth_policy entry must not be a {auth_policy.describe()}"
            )
        fields = _read_elements(auth_policy.contents)
        tags = [f.tag for f in fields if f.is_context()]
        if len(fields) != len(tags) or tags not in ([1], [0, 1]):
            raise MalformedError(
                "auth_policy entry must hold an optional name [0] and policy [1]"
            )
        if tags[0] == 0:
            _unwrap(fields[0], TAG_UTF8_STRING, METHOD_PRIMITIVE, "name")
        policy = _unwrap(fields[-1], TAG_SEQUENCE, METHOD_CONSTRUCTED, "auth_policy")
        _check_policies(policy, "auth_policy")


def _check_optional(tag: int, el: _Element, strict: bool) -> _Element:
    """Validate an explicitly tagged field and return the wrapped element."""
    utag, method, name = _optional_fields[tag]
    value = _unwrap(el, utag, method, name)
    if tag == TAG_POLICY:
        _check_policies(value, name)
    elif tag == TAG_AUTH_POLICY:
        _check_auth_policies(value)
    elif tag == TAG_EMPTY_AUTH:
        if len(value.contents) != 1:
            raise MalformedError(
                f"empty_auth must be a single byte, got {len(value.contents)} bytes"
            )
        if strict and value.contents not in (b"\x00", b"\xff"):
            raise MalformedError(f"empty_auth is not DER encoded: {value.contents.hex()}")
    return value


def _check_layout(children: List[_Element], strict: bool) -> Dict[int, _Element]:
    """Check the shape of the outer SEQUENCE.

    Args:
        children (List[_Element]): The elements inside the outer SEQUENCE.
        strict (bool): Only accept DER booleans.

    Returns:
        A dict of the present optional fields, indexed by context tag.

    Raises:
        MalformedError: If an element is missing or has the wrong type.
        UnsupportedFieldError: If the context tags are not in increasing order or unknown.
    """
    if len(children) == 0 or not children[0].is_universal(TAG_OBJECT_IDENTIFIER):
        raise MalformedError("key type must be an OBJECT IDENTIFIER")
    if not _is_minimal_oid(children[0].contents):
        raise MalformedError("key type is not a DER encoded OBJECT IDENTIFIER")

    present = dict()
    last = -1
    index = 1
    while index < len(children) and children[index].is_context():
        el = children[index]
        if el.tag not in _optional_fields:
            raise UnsupportedFieldError(f"unknown context tag [{el.tag}]", el.tag)
        if el.tag == last:
            raise UnsupportedFieldError(f"duplicate context tag [{el.tag}]", el.tag)
        if el.tag < last:
            raise UnsupportedFieldError(
                f"context tag [{el.tag}] after [{last}]", el.tag
            )
        present[el.tag] = _check_optional(el.tag, el, strict)
        last = el.tag
        index += 1

    rest = children[index:]
    for el in rest:
        if el.is_context():
            raise UnsupportedFieldError(
                f"context tag [{el.tag}] after the required fields", el.tag
            )
    if len(rest) < len(_required_fields):
        _, name = _required_fields[len(rest)]
        raise MalformedError(f"missing required field {name}")
    if len(rest) > len(_required_fields):
        raise MalformedError(
            f"{len(rest) - len(_required_fields)} unexpected elements after private_key"
        )
    for el, (utag, name) in zip(rest, _required_fields):
        if not el.is_universal(utag):
            raise MalformedError(f"{name} must not be a {el.describe()}")
    if not _is_minimal_integer(rest[0].contents):
        raise MalformedError("parent is not a minimally encoded INTEGER")
    return present


def _policies_from_native(
    name: str, natives: Optional[List[dict]]
) -> Tuple[TPMPolicy, ...]:
    if natives is None:
        return tuple()
    policies = list()
    for native in natives:
        cc = native["command_code"]
        if not 0 <= cc <= 0xFFFFFFFF:
            raise MalformedError(f"{name} command code {cc} is out of range")
        policies.append(TPMPolicy(cc, native["command_policy"]))
    return tuple(policies)


def _auth_policies_from_native(
    natives: Optional[List[dict]],
) -> Tuple[TPMAuthPolicy, ...]:
    if natives is None:
        return tuple()
    auth_policies = list()
    for native in natives:
        name = native["name"] or ""
        policy = _policies_from_native("auth_policy", native["policy"])
        if len(policy) == 0:
            raise MalformedError(f"auth policy {name!r} has no policy commands")
        auth_policies.append(TPMAuthPolicy(name=name, policy=policy))
    return tuple(auth_policies)


def _policies_to_native(policies: Tuple[TPMPolicy, ...]) -> List[dict]:
    return [
        {"command_code": p.command_code, "command_policy": p.command_policy}
        for p in policies
    ]


def _auth_policies_to_native(auth_policies: Tuple[TPMAuthPolicy, ...]) -> List[dict]:
    natives = list()
    for ap in auth_policies:
        native = {"policy": _policies_to_native(ap.policy)}
        if ap.name:
            native["name"] = ap.name
        natives.append(native)
    return natives


def parse_private_key(
    data: Union[bytes, bytearray, memoryview], strict: Optional[bool] = None
) -> TPMKey:
    """Decode a DER encoded TSS2 private key.

    Args:
        data (bytes): Exactly one DER encoded TPMKey SEQUENCE.
        strict (bool): Only accept 0xFF as true for empty_auth, default from the configuration.

    Returns:
        Returns a TPMKey instance.

    Raises:
        InvalidArgumentError: If data is None or not bytes.
        TrailingDataError: If there are bytes after the SEQUENCE.
        UnsupportedFieldError: If the optional fields are out of order, duplicated or unknown.
        MalformedError: If data is not a DER encoded TPMKey.
    """
    if data is None:
        raise InvalidArgumentError("no data to parse")
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise InvalidArgumentError(
            f"expected data to be bytes, got {data.__class__.__name__}"
        )
    if strict is None:
        strict = config.STRICT_BOOLEAN
    data = bytes(data)

    outer, end = _read_element(data)
    if not outer.is_universal(TAG_SEQUENCE, METHOD_CONSTRUCTED):
        raise MalformedError(f"expected a SEQUENCE, got a {outer.describe()}")
    if end != len(data):
        raise TrailingDataError(end, len(data) - end)

    present = _check_layout(_read_elements(outer.contents), strict)
    empty_auth = False
    if TAG_EMPTY_AUTH in present:
        empty_auth = present[TAG_EMPTY_AUTH].contents != b"\x00"

    try:
        seq = _tpmkey_der.load(data, strict=True)
        key_type = seq["type"].dotted
        parent = seq["parent"].native
        public_key = seq["public_key"].native
        private_key = seq["private_key"].native
        secret = seq["secret"].native or b""
        policy = seq["policy"].native
        auth_policy = seq["auth_policy"].native
    except (ValueError, TypeError, IndexError) as e:
        raise MalformedError(f"unable to decode TSS2 key: {e}") from e

    try:
        key = TPMKey(
            type=key_type,
            parent=parent,
            public_key=public_key,
            private_key=private_key,
            empty_auth=empty_auth,
            policy=_policies_from_native("policy", policy),
            secret=secret,
            auth_policy=_auth_policies_from_native(auth_policy),
        )
    except InvalidArgumentError as e:
        raise MalformedError(e.reason) from e

    logger.debug(
        f"decoded TSS2 key of type {key.type_name or 'unknown'} ({key.type}), parent 0x{key.parent:x}"
    )
    return key


def marshal_private_key(key: TPMKey) -> bytes:
    """Encode a TPMKey as DER.

    Optional fields holding their default value are omitted, so the same
    key always encodes to the same bytes.

    Args:
        key (TPMKey): The key to encode.

    Returns:
        Returns the DER encoding as bytes.

    Raises:
        InvalidArgumentError: If key is None or not a TPMKey.
    """
    if key is None:
        raise InvalidArgumentError("no key to marshal")
    if not isinstance(key, TPMKey):
        raise InvalidArgumentError(
            f"expected key to be a TPMKey, got {key.__class__.__name__}"
        )
    seq = _tpmkey_der()
    seq["type"] = str(key.type)
    if key.empty_auth:
        seq["empty_auth"] = True
    if key.policy:
        seq["policy"] = _policies_to_native(key.policy)
    if key.secret:
        seq["secret"] = key.secret
    if key.auth_policy:
        seq["auth_policy"] = _auth_policies_to_native(key.auth_policy)
    seq["parent"] = key.parent
    seq["public_key"] = key.public_key
    seq["private_key"] = key.private_key
    der = seq.dump()
    logger.debug(f"encoded TSS2 key of type {key.type} into {len(der)} bytes")
    return der


def encode_to_memory(key: TPMKey) -> bytes:
    """Encode a TPMKey as PEM with the TSS2 PRIVATE KEY label.

    Args:
        key (TPMKey): The key to encode.

    Returns:
        Returns the PEM encoding as bytes.
    """
    der = marshal_private_key(key)
    return pem.armor(TSS2_PEM_TYPE, der)


def decode_from_memory(
    data: Union[bytes, str], strict: Optional[bool] = None
) -> TPMKey:
    """Decode a PEM encoded TSS2 private key.

    Args:
        data (Union[bytes, str]): The PEM encoded key.
        strict (bool): Only accept 0xFF as true for empty_auth, default from the configuration.

    Returns:
        Returns a TPMKey instance.

    Raises:
        MalformedError: If the PEM armor is broken or has the wrong label.
    """
    if data is None:
        raise InvalidArgumentError("no data to parse")
    try:
        if isinstance(data, str):
            data = data.encode("ascii")
        pem_type, _, der = pem.unarmor(data)
    except (ValueError, TypeError) as e:
        raise MalformedError(f"invalid PEM armor: {e}") from e
    if pem_type != TSS2_PEM_TYPE:
        raise MalformedError(f"unsupported PEM type {pem_type}")
    return parse_private_key(der, strict=strict)
