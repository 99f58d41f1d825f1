"""ABI helpers for the access contract.

Only the handful of functions the oracle reads or prepares are
described here. Selectors are the first four bytes of the keccak-256
hash of the canonical signature.
"""

from dataclasses import dataclass
from typing import Any, Tuple

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from web3 import Web3

from oracle.app.exceptions import ExternalReadError, InvalidAddressError


@dataclass(frozen=True)
class ContractFunction:
    name: str
    inputs: Tuple[str, ...]
    outputs: Tuple[str, ...] = ()

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(self.inputs)})"

    @property
    def selector(self) -> bytes:
        return bytes(Web3.keccak(text=self.signature)[:4])

    def encode_call(self, *args: Any) -> str:
        """Build 0x-prefixed calldata for this function."""
        payload = self.selector + encode(list(self.inputs), list(args))
        return "0x" + payload.hex()

    def decode_result(self, data: bytes) -> Tuple[Any, ...]:
        """Decode return data, raising ExternalReadError on malformed bytes."""
        try:
            return tuple(decode(list(self.outputs), data))
        except DecodingError as e:
            raise ExternalReadError(
                f"Malformed return data for {self.signature}: {e}"
            ) from e


# Reads
GET_USER_SUBSCRIPTION = ContractFunction(
    "getUserSubscription",
    ("address",),
    ("uint8", "uint256", "uint256", "uint256", "uint256", "uint256"),
)
PLANS = ContractFunction("plans", ("uint8",), ("uint256", "uint256", "bool"))
GET_USER_CREDITS = ContractFunction("getUserCredits", ("address",), ("uint256",))

# Privileged writes (prepared, never sent)
UPDATE_USER_MEMORY_POINTER = ContractFunction(
    "updateUserMemoryPointer", ("address", "string")
)
AWARD_CREDITS = ContractFunction("awardCredits", ("address", "uint256", "string"))
AWARD_CREDITS_BATCH = ContractFunction(
    "awardCreditsBatch", ("address[]", "uint256[]", "string")
)


def is_valid_address(value: Any) -> bool:
    """True for 0x-prefixed 20-byte hex strings with a valid (or absent) checksum."""
    return isinstance(value, str) and Web3.is_address(value)


def normalize_address(value: Any, field: str = "user") -> str:
    """Return the checksummed form of an address.

    Raises:
        InvalidAddressError: If value is not a valid address
    """
    if not is_valid_address(value):
        raise InvalidAddressError(value, field)
    return Web3.to_checksum_address(value)
