# SPDX-License-Identifier: BSD-2
"""The in-memory records of a TSS2 private key file."""
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, Union

from .constants import TSS2_KEY_OID, TPM2_RH_OWNER
from .exceptions import InvalidArgumentError
from .internal.utils import _size_prefix

_BYTES_LIKE = (bytes, bytearray, memoryview)


def _to_bytes(name: str, value, optional: bool = False) -> bytes:
    if value is None and optional:
        return b""
    if not isinstance(value, _BYTES_LIKE):
        raise InvalidArgumentError(
            f"expected {name} to be bytes, got {value.__class__.__name__}"
        )
    return bytes(value)


def _to_int(name: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgumentError(
            f"expected {name} to be an int, got {value.__class__.__name__}"
        )
    return int(value)


def _to_tuple(name: str, value, tipe: type) -> tuple:
    if value is None:
        return tuple()
    if isinstance(value, (str,) + _BYTES_LIKE):
        raise InvalidArgumentError(
            f"expected {name} to be a sequence of {tipe.__name__}"
        )
    try:
        items = tuple(value)
    except TypeError:
        raise InvalidArgumentError(
            f"expected {name} to be a sequence of {tipe.__name__}"
        )
    for item in items:
        if not isinstance(item, tipe):
            raise InvalidArgumentError(
                f"expected {name} to only contain {tipe.__name__}, got {item.__class__.__name__}"
            )
    return items


def _marshaled(name: str, value, add_size: bool) -> bytes:
    if hasattr(value, "marshal"):
        return value.marshal()
    data = _to_bytes(name, value)
    if add_size:
        data = _size_prefix(data)
    return data


@dataclass(frozen=True)
class TPMPolicy:
    """A single TPM policy command.

    Attributes:
        command_code (int): The TPM2_CC of the policy command.
        command_policy (bytes): The marshaled parameters of the policy command.
    """

    command_code: int
    command_policy: bytes = b""

    def __post_init__(self):
        cc = _to_int("command_code", self.command_code)
        if not 0 <= cc <= 0xFFFFFFFF:
            raise InvalidArgumentError(
                f"command_code must be an unsigned 32 bit integer, got {cc}"
            )
        object.__setattr__(self, "command_code", cc)
        object.__setattr__(
            self,
            "command_policy",
            _to_bytes("command_policy", self.command_policy, optional=True),
        )


@dataclass(frozen=True)
class TPMAuthPolicy:
    """A named set of policy commands.

    Attributes:
        name (str): The label of the policy, empty if not set.
        policy (Tuple[TPMPolicy, ...]): The policy commands, must not be empty.
    """

    name: str = ""
    policy: Tuple[TPMPolicy, ...] = ()

    def __post_init__(self):
        name = self.name if self.name is not None else ""
        if not isinstance(name, str):
            raise InvalidArgumentError(
                f"expected name to be a str, got {name.__class__.__name__}"
            )
        policy = _to_tuple("policy", self.policy, TPMPolicy)
        if len(policy) == 0:
            raise InvalidArgumentError("auth policy must contain at least one policy")
        object.__setattr__(self, "name", name)
        object.__setattr__(self, "policy", policy)


@dataclass(frozen=True)
class TPMKey:
    """TPMKey is the content of a TSS2 private key file as used by tpm2-tss-engine / tpm2-openssl.

    The public and private parts are the marshaled TPM2B_PUBLIC and TPM2B_PRIVATE
    structures and are never interpreted.

    Attributes:
        type (TSS2_KEY_OID): The key type, unregistered identifiers are allowed.
        parent (int): The parent handle, either a persistent handle or TPM2_RH_OWNER.
        public_key (bytes): The marshaled TPM2B_PUBLIC.
        private_key (bytes): The marshaled TPM2B_PRIVATE.
        empty_auth (bool): True if the key has an empty password, default is False.
        policy (Tuple[TPMPolicy, ...]): The policy commands needed to use the key.
        secret (bytes): The encrypted seed of an importable key, empty if not set.
        auth_policy (Tuple[TPMAuthPolicy, ...]): Signed policies for the key.
    """

    type: TSS2_KEY_OID
    parent: int
    public_key: bytes
    private_key: bytes
    empty_auth: bool = False
    policy: Tuple[TPMPolicy, ...] = ()
    secret: bytes = b""
    auth_policy: Tuple[TPMAuthPolicy, ...] = ()

    def __post_init__(self):
        try:
            key_type = TSS2_KEY_OID(self.type)
        except (TypeError, ValueError) as e:
            raise InvalidArgumentError(f"invalid key type: {e}") from e
        object.__setattr__(self, "type", key_type)
        object.__setattr__(self, "parent", _to_int("parent", self.parent))
        object.__setattr__(
            self, "public_key", _to_bytes("public_key", self.public_key)
        )
        object.__setattr__(
            self, "private_key", _to_bytes("private_key", self.private_key)
        )
        object.__setattr__(self, "empty_auth", bool(self.empty_auth))
        object.__setattr__(
            self, "policy", _to_tuple("policy", self.policy, TPMPolicy)
        )
        object.__setattr__(
            self, "secret", _to_bytes("secret", self.secret, optional=True)
        )
        object.__setattr__(
            self,
            "auth_policy",
            _to_tuple("auth_policy", self.auth_policy, TPMAuthPolicy),
        )

    @property
    def type_name(self) -> Optional[str]:
        """str: The friendly name of the key type, None if the type is not registered."""
        return self.type.friendly_name()

    @classmethod
    def new(
        cls,
        public,
        private,
        key_type: Union[TSS2_KEY_OID, str] = TSS2_KEY_OID.LOADABLE,
        parent: int = TPM2_RH_OWNER,
        empty_auth: bool = True,
        policy: Sequence[TPMPolicy] = (),
        secret: bytes = b"",
        auth_policy: Sequence[TPMAuthPolicy] = (),
        add_size: bool = False,
    ) -> "TPMKey":
        """Create a TPMKey for a freshly created TPM object.

        Args:
            public (Union[TPM2B_PUBLIC, bytes]): The public part of the TPM key.
            private (Union[TPM2B_PRIVATE, bytes]): The private part of the TPM key.
            key_type (Union[TSS2_KEY_OID, str]): The key type, default is TSS2_KEY_OID.LOADABLE.
            parent (int): The parent of the key, default is TPM2_RH_OWNER.
            empty_auth (bool): Defines if the authorization is a empty password, default is True.
            policy (Sequence[TPMPolicy]): The policy commands of the key, default is no policy.
            secret (bytes): The encrypted seed for importable keys, default is no secret.
            auth_policy (Sequence[TPMAuthPolicy]): The signed policies, default is no auth policies.
            add_size (bool): Prefix raw bytes with the TPM2B size, default is False.

        Returns:
            Returns a TPMKey instance.

        Note:
            Objects with a marshal method, such as the tpm2-pytss TPM2B types, are marshaled and add_size is ignored for them.
        """
        if isinstance(key_type, str) and not isinstance(key_type, TSS2_KEY_OID):
            try:
                key_type = TSS2_KEY_OID.parse(key_type)
            except ValueError as e:
                raise InvalidArgumentError(str(e)) from e
        return cls(
            type=key_type,
            parent=parent,
            public_key=_marshaled("public", public, add_size),
            private_key=_marshaled("private", private, add_size),
            empty_auth=empty_auth,
            policy=policy,
            secret=secret,
            auth_policy=auth_policy,
        )

    def to_der(self) -> bytes:
        """Encode the TPMKey as DER encoded ASN.1.

        Returns:
            Returns the DER encoding as bytes.
        """
        from .tsskey import marshal_private_key

        return marshal_private_key(self)

    def to_pem(self) -> bytes:
        """Encode the TPMKey as PEM encoded ASN.1.

        Returns:
            Returns the PEM encoding as bytes.
        """
        from .tsskey import encode_to_memory

        return encode_to_memory(self)

    @classmethod
    def from_der(cls, data: bytes, strict: Optional[bool] = None) -> "TPMKey":
        """Load a TPMKey from DER ASN.1.

        Args:
            data (bytes): The DER encoded ASN.1.
            strict (bool): Only accept 0xFF as a true boolean, default from the configuration.

        Returns:
            Returns a TPMKey instance.
        """
        from .tsskey import parse_private_key

        return parse_private_key(data, strict=strict)

    @classmethod
    def from_pem(cls, data: bytes, strict: Optional[bool] = None) -> "TPMKey":
        """Load a TPMKey from PEM ASN.1.

        Args:
            data (bytes): The PEM encoded ASN.1.
            strict (bool): Only accept 0xFF as a true boolean, default from the configuration.

        Returns:
            Returns a TPMKey instance.
        """
        from .tsskey import decode_from_memory

        return decode_from_memory(data, strict=strict)
