# SPDX-License-Identifier: BSD-2
from binascii import hexlify, unhexlify
from typing import Any, Dict, List, Union

import yaml

from .constants import TSS2_KEY_OID
from .types import TPMAuthPolicy, TPMKey, TPMPolicy


class tsskey_encdec(object):
    """Encoder/decoder between TPMKey and plain python types

    Args:
        strict (bool): If a exception should be raised for unknown fields during decoding, defaults to False.
    """

    _key_fields = (
        "type",
        "empty_auth",
        "policy",
        "secret",
        "auth_policy",
        "parent",
        "public_key",
        "private_key",
    )
    _policy_fields = ("command_code", "command_policy")
    _auth_policy_fields = ("name", "policy")

    def __init__(self, strict: bool = False):
        self._strict = strict

    def _check_fields(self, src: Dict[str, Any], known, what: str):
        if not isinstance(src, dict):
            raise TypeError(f"expected {what} to be a dict, got {src.__class__.__name__}")
        if not self._strict:
            return
        for k in src.keys():
            if k not in known:
                raise ValueError(f"unknown field {k} in {what}")

    def encode_bytes(self, val: bytes) -> str:
        """Encode bytes as a lowercase hex string"""
        return hexlify(val).decode("ascii")

    def encode_type(self, val: TSS2_KEY_OID) -> str:
        """Encode the key type, using the friendly name if there is one"""
        name = val.friendly_name()
        if name is None:
            return str(val)
        return name

    def encode_policy(self, val: TPMPolicy) -> Dict[str, Union[int, str]]:
        return {
            "command_code": val.command_code,
            "command_policy": self.encode_bytes(val.command_policy),
        }

    def encode_auth_policy(self, val: TPMAuthPolicy) -> Dict[str, Any]:
        d = dict()
        if val.name:
            d["name"] = val.name
        d["policy"] = [self.encode_policy(p) for p in val.policy]
        return d

    def encode(self, val: TPMKey) -> Dict[str, Any]:
        """Encode a TPMKey

        Fields holding their default value are left out, like in the DER encoding.

        Args:
            val (TPMKey): The key to encode

        Returns:
            A dict with the fields of the key.

        Raises:
            TypeError: if val is not a TPMKey.
        """
        if not isinstance(val, TPMKey):
            raise TypeError(f"unable to encode value of type {val.__class__.__name__}")
        d = {"type": self.encode_type(val.type)}
        if val.empty_auth:
            d["empty_auth"] = True
        if val.policy:
            d["policy"] = [self.encode_policy(p) for p in val.policy]
        if val.secret:
            d["secret"] = self.encode_bytes(val.secret)
        if val.auth_policy:
            d["auth_policy"] = [self.encode_auth_policy(ap) for ap in val.auth_policy]
        d["parent"] = val.parent
        d["public_key"] = self.encode_bytes(val.public_key)
        d["private_key"] = self.encode_bytes(val.private_key)
        return d

    def decode_bytes(self, src: str) -> bytes:
        if src is None:
            return b""
        return unhexlify(src)

    def decode_type(self, src: str) -> TSS2_KEY_OID:
        return TSS2_KEY_OID.parse(src)

    def decode_policy(self, src: Dict[str, Any]) -> TPMPolicy:
        self._check_fields(src, self._policy_fields, "policy")
        return TPMPolicy(
            command_code=src["command_code"],
            command_policy=self.decode_bytes(src.get("command_policy")),
        )

    def decode_policies(self, src: List[Dict[str, Any]]) -> List[TPMPolicy]:
        if src is None:
            return list()
        return [self.decode_policy(p) for p in src]

    def decode_auth_policy(self, src: Dict[str, Any]) -> TPMAuthPolicy:
        self._check_fields(src, self._auth_policy_fields, "auth_policy")
        return TPMAuthPolicy(
            name=src.get("name") or "",
            policy=self.decode_policies(src.get("policy")),
        )

    def decode(self, src: Dict[str, Any]) -> TPMKey:
        """Decode a TPMKey

        Args:
            src (Dict[str, Any]): The encoded key, as returned by encode.

        Returns:
            A TPMKey instance.

        Raises:
            ValueError: if strict is set and src contains unknown fields.
            KeyError: if a required field is missing.
        """
        self._check_fields(src, self._key_fields, "key")
        auth_policy = src.get("auth_policy") or list()
        return TPMKey(
            type=self.decode_type(src["type"]),
            empty_auth=bool(src.get("empty_auth", False)),
            policy=self.decode_policies(src.get("policy")),
            secret=self.decode_bytes(src.get("secret")),
            auth_policy=[self.decode_auth_policy(ap) for ap in auth_policy],
            parent=src["parent"],
            public_key=self.decode_bytes(src["public_key"]),
            private_key=self.decode_bytes(src["private_key"]),
        )


def to_yaml(val: TPMKey) -> str:
    enc = tsskey_encdec()
    ev = enc.encode(val)
    return yaml.safe_dump(ev, sort_keys=False)


def from_yaml(src: str, strict: bool = False) -> TPMKey:
    dec = tsskey_encdec(strict=strict)
    d = yaml.safe_load(src)
    return dec.decode(d)
