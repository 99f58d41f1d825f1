"""Memory pointer update preparation."""

from fastapi import APIRouter, Depends

from oracle.app.api.deps import get_write_preparer
from oracle.app.api.schemas import MemoryUpdateRequest, PreparedCallResponse
from oracle.app.ledger.writes import WritePreparer

router = APIRouter(prefix="/memory", tags=["memory"])


@router.post("/update", response_model=PreparedCallResponse, response_model_exclude_none=True)
async def update_memory_pointer(
    body: MemoryUpdateRequest,
    preparer: WritePreparer = Depends(get_write_preparer),
) -> PreparedCallResponse:
    # Only the oracle or owner wallet may send this call
    prepared = preparer.prepare_memory_pointer_update(body.user, body.memory_hash)
    return PreparedCallResponse(to=prepared.to, data=prepared.data)
