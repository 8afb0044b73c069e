# SPDX-License-Identifier: BSD-2
from .constants import *
from .exceptions import (
    TSSKeyError,
    MalformedError,
    UnsupportedFieldError,
    TrailingDataError,
    InvalidArgumentError,
)
from .types import TPMKey, TPMPolicy, TPMAuthPolicy
from .tsskey import (
    parse_private_key,
    marshal_private_key,
    encode_to_memory,
    decode_from_memory,
)
