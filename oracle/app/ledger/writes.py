"""Preparation of privileged contract writes.

The oracle never holds a signing key. For a privileged action it only
returns the target address and calldata; an authorized wallet signs
and submits the transaction itself.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Sequence

from oracle.app.exceptions import ValidationError
from oracle.app.ledger import abi


@dataclass(frozen=True)
class PreparedCall:
    to: str
    data: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class WritePreparer:
    """Encode privileged access-contract calls."""

    def __init__(self, contract_address: str, max_batch_size: int = 100):
        self.contract_address = abi.normalize_address(contract_address, "contract")
        self.max_batch_size = max_batch_size

    def _prepared(self, function: abi.ContractFunction, *args: Any) -> PreparedCall:
        return PreparedCall(to=self.contract_address, data=function.encode_call(*args))

    def prepare_memory_pointer_update(self, user: str, memory_hash: str) -> PreparedCall:
        user = abi.normalize_address(user)
        if not isinstance(memory_hash, str) or not memory_hash:
            raise ValidationError("memory_hash required")
        return self._prepared(abi.UPDATE_USER_MEMORY_POINTER, user, memory_hash)

    def prepare_award_credits(self, user: str, amount: int, reason: str) -> PreparedCall:
        user = abi.normalize_address(user)
        _check_amount(amount)
        _check_reason(reason)
        return self._prepared(abi.AWARD_CREDITS, user, amount, reason)

    def prepare_award_credits_batch(
        self, users: Sequence[str], amounts: Sequence[int], reason: str
    ) -> PreparedCall:
        if len(users) != len(amounts):
            raise ValidationError("users and amounts must have the same length")
        if not users:
            raise ValidationError("batch must not be empty")
        if len(users) > self.max_batch_size:
            raise ValidationError(
                f"batch of {len(users)} exceeds max batch size {self.max_batch_size}"
            )
        normalized = [abi.normalize_address(u) for u in users]
        for amount in amounts:
            _check_amount(amount)
        _check_reason(reason)
        return self._prepared(abi.AWARD_CREDITS_BATCH, normalized, list(amounts), reason)


def _check_amount(amount: Any) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise ValidationError(f"amount must be a positive integer, got {amount!r}")


def _check_reason(reason: Any) -> None:
    if not isinstance(reason, str) or not reason:
        raise ValidationError("reason required")
