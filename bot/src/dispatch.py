#    Copyright 2025, Stankevich Andrey, stankevich.as@phystech.edu

#    Licensed under the Apache License, Version 2.0 (the "License");
#    you may not use this file except in compliance with the License.
#    You may obtain a copy of the License at

#        http://www.apache.org/licenses/LICENSE-2.0

#    Unless required by applicable law or agreed to in writing, software
#    distributed under the License is distributed on an "AS IS" BASIS,
#    WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
#    See the License for the specific language governing permissions and
#    limitations under the License.

"""
Dispatch protocol binding a button press to an operation and an image.

A token is the one-character operation code followed, verbatim,
by an opaque file reference issued by Telegram:

    token = code + file_ref

Telegram limits callback data to 64 bytes, so the code is the
shortest possible selector. Codes are first letters of operation
labels; the table is computed once at startup and is read-only
afterwards.

Because the code always has width 1, decoding splits at index 1
and a reference that happens to start with a code character still
decodes to itself. The only reserved value is the cancel sentinel,
which is compared as a whole before decoding.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from vision.operations import OperationKind


CANCEL_TOKEN = "cancel"
MAX_TOKEN_BYTES = 64


class DispatchError(Exception):
    """Base class for dispatch protocol errors."""
    def __init__(  # noqa: D107
        self,
        message: str,
        code: str = "DISPATCH_ERROR"
    ):
        super().__init__(message)
        self.code = code


class ConfigurationError(DispatchError):
    """Raised at startup when operation codes are ambiguous."""
    def __init__(self, detail: str):  # noqa: D107
        super().__init__(detail, "CONFIGURATION_ERROR")


class MalformedTokenError(DispatchError):
    """Raised when a token cannot be split into code and reference."""
    def __init__(  # noqa: D107
        self,
        detail: str = "Malformed dispatch token",
        code: str = "MALFORMED_TOKEN"
    ):
        super().__init__(detail, code)


class TokenTooLongError(MalformedTokenError):
    """Raised when a token exceeds the callback payload limit."""
    def __init__(self, detail: str):  # noqa: D107
        super().__init__(detail, "TOKEN_TOO_LONG")


class UnknownOperationError(DispatchError):
    """Raised when the token's code matches no registered operation."""
    def __init__(self, detail: str):  # noqa: D107
        super().__init__(detail, "UNKNOWN_OPERATION")


@dataclass(frozen=True)
class DispatchProtocol:
    """Bijection between operations and their one-character codes.

    Attributes:
        codes: operation -> code
        operations: code -> operation
        cancel_token: sentinel carried by the cancel button
        max_token_bytes: payload limit of a button, UTF-8 bytes
    """
    codes: Mapping[Any, str]
    operations: Mapping[str, Any]
    cancel_token: str = CANCEL_TOKEN
    max_token_bytes: int = MAX_TOKEN_BYTES

    @classmethod
    def from_operations(
        cls,
        operations: Iterable[Any] = tuple(OperationKind),
        cancel_token: str = CANCEL_TOKEN,
        max_token_bytes: int = MAX_TOKEN_BYTES,
    ) -> "DispatchProtocol":
        """Build the code tables from operation labels.

        Args:
            operations: operations exposing a non-empty `label`
            cancel_token: sentinel of the cancel button
            max_token_bytes: payload limit of a button

        Raises:
            ConfigurationError: if two operations share a first
            letter, or the cancel sentinel starts with a code
        """
        codes: dict[Any, str] = {}
        by_code: dict[str, Any] = {}
        for op in operations:
            if not op.label:
                raise ConfigurationError(f"Operation {op!r} has no label")
            code = op.label[0]
            if code in by_code:
                raise ConfigurationError(
                    f"Operations '{by_code[code].label}' and '{op.label}' "
                    f"share the code '{code}'"
                )
            codes[op] = code
            by_code[code] = op

        if not cancel_token or cancel_token[0] in by_code:
            raise ConfigurationError(
                f"Cancel token '{cancel_token}' collides with operation codes"
            )

        return cls(
            codes=MappingProxyType(codes),
            operations=MappingProxyType(by_code),
            cancel_token=cancel_token,
            max_token_bytes=max_token_bytes,
        )

    def is_cancel(self, token: str) -> bool:  # noqa: D102
        return token == self.cancel_token

    def encode(self, op: Any, ref: str) -> str:
        """Pack an operation and a file reference into a token.

        Raises:
            ConfigurationError: if op has no registered code
            TokenTooLongError: if the token exceeds max_token_bytes
        """
        try:
            code = self.codes[op]
        except KeyError:
            raise ConfigurationError(
                f"Operation {op!r} has no assigned code") from None

        token = f"{code}{ref}"
        size = len(token.encode("utf-8"))
        if size > self.max_token_bytes:
            raise TokenTooLongError(
                f"Token of {size} bytes exceeds the limit "
                f"of {self.max_token_bytes}"
            )
        return token

    def decode(self, token: str) -> tuple[Any, str]:
        """Unpack a token into (operation, file reference).

        Raises:
            MalformedTokenError: if token is empty
            UnknownOperationError: if its first character is not a code
        """
        if not token:
            raise MalformedTokenError("Empty dispatch token")

        code, ref = token[0], token[1:]
        try:
            return self.operations[code], ref
        except KeyError:
            raise UnknownOperationError(
                f"Unknown operation code '{code}'") from None
