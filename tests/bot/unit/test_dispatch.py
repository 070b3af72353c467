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

"""Unit tests for bot.src.dispatch module.

Coverage:
- Code table construction and collision detection
- Token encoding, decoding and the payload limit
- Cancel sentinel handling
"""

from dataclasses import dataclass

import pytest

from bot.src.dispatch import (
    CANCEL_TOKEN,
    ConfigurationError,
    DispatchProtocol,
    MalformedTokenError,
    TokenTooLongError,
    UnknownOperationError,
)
from vision.operations import OperationKind


@dataclass(frozen=True)
class FakeOperation:  # noqa: D101
    label: str


@pytest.fixture
def protocol():  # noqa: D103
    return DispatchProtocol.from_operations()


class TestCodeTable:
    """Test suite for DispatchProtocol.from_operations."""

    def test_codes_are_first_letters(self, protocol):  # noqa: D102
        assert protocol.codes[OperationKind.EMOTION] == "E"
        assert protocol.codes[OperationKind.FACE] == "F"
        assert protocol.codes[OperationKind.OCR] == "O"
        assert protocol.codes[OperationKind.MASK_FACES] == "M"
        assert len(protocol.operations) == len(OperationKind)

    def test_tables_are_inverse(self, protocol):  # noqa: D102
        for op, code in protocol.codes.items():
            assert protocol.operations[code] is op

    def test_tables_are_read_only(self, protocol):  # noqa: D102
        with pytest.raises(TypeError):
            protocol.operations["X"] = OperationKind.OCR

    def test_shared_first_letter(self):
        """Two labels starting with the same letter are ambiguous."""
        with pytest.raises(ConfigurationError, match="share the code 'F'"):
            DispatchProtocol.from_operations(
                [FakeOperation("Face Detection"), FakeOperation("Filter")])

    def test_empty_label(self):  # noqa: D102
        with pytest.raises(ConfigurationError):
            DispatchProtocol.from_operations([FakeOperation("")])

    def test_cancel_token_collision(self):
        """The cancel sentinel must not start with an operation code."""
        with pytest.raises(ConfigurationError) as exc_info:
            DispatchProtocol.from_operations(
                [FakeOperation("Crop")], cancel_token="Cancel")
        assert exc_info.value.code == "CONFIGURATION_ERROR"


class TestTokens:
    """Test suite for encode and decode."""

    def test_encode(self, protocol):  # noqa: D102
        token = protocol.encode(OperationKind.FACE, "AgACAgIAAxk")
        assert token == "FAgACAgIAAxk"

    def test_decode(self, protocol):  # noqa: D102
        assert protocol.decode("OAgACAgIAAxk") == (
            OperationKind.OCR, "AgACAgIAAxk")

    def test_reference_starting_with_code_char(self, protocol):
        """The code has a fixed width, the reference is never parsed."""
        for op in OperationKind:
            for ref in ("EFDOHTCM", "cancel", "", "Face"):
                assert protocol.decode(protocol.encode(op, ref)) == (op, ref)

    def test_too_long(self, protocol):  # noqa: D102
        with pytest.raises(TokenTooLongError) as exc_info:
            protocol.encode(OperationKind.TAG, "x" * 64)
        assert isinstance(exc_info.value, MalformedTokenError)
        assert exc_info.value.code == "TOKEN_TOO_LONG"

    def test_limit_counts_utf8_bytes(self, protocol):  # noqa: D102
        assert protocol.encode(OperationKind.TAG, "x" * 63)
        with pytest.raises(TokenTooLongError):
            protocol.encode(OperationKind.TAG, "ж" * 32)

    def test_unknown_operation(self, protocol):  # noqa: D102
        with pytest.raises(ConfigurationError):
            protocol.encode(FakeOperation("Zoom"), "ref")

    def test_empty_token(self, protocol):  # noqa: D102
        with pytest.raises(MalformedTokenError):
            protocol.decode("")

    def test_unknown_code(self, protocol):  # noqa: D102
        with pytest.raises(UnknownOperationError) as exc_info:
            protocol.decode("Zref")
        assert exc_info.value.code == "UNKNOWN_OPERATION"


def test_cancel(protocol):  # noqa: D103
    assert protocol.is_cancel(CANCEL_TOKEN)
    assert not protocol.is_cancel("cancelled")
    # checked before decoding, "c" is no operation code
    with pytest.raises(UnknownOperationError):
        protocol.decode(CANCEL_TOKEN)
