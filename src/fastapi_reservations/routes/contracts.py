"""Merchant contract endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from fastapi_reservations.contracts import ContractFlow
from fastapi_reservations.dependencies import get_actor, get_contract_flow
from fastapi_reservations.schemas import (
    ContractResponse,
    CreateContractRequest,
    DeletedResponse,
    ExpireContractsRequest,
    TransitionRequest,
    UpdateContractRequest,
)
from fastapi_reservations.types import Actor

router = APIRouter(tags=["contracts"])


@router.post("/contracts", response_model=ContractResponse, status_code=201)
async def create_contract(
    body: CreateContractRequest,
    actor: Actor = Depends(get_actor),
    flow: ContractFlow = Depends(get_contract_flow),
) -> ContractResponse:
    contract = await flow.create_contract(actor, **body.model_dump())
    return ContractResponse.model_validate(contract)


@router.get("/contracts", response_model=list[ContractResponse])
async def list_contracts(
    status: str | None = None,
    actor: Actor = Depends(get_actor),
    flow: ContractFlow = Depends(get_contract_flow),
) -> list[ContractResponse]:
    contracts = await flow.list_contracts(actor, status=status)
    return [ContractResponse.model_validate(c) for c in contracts]


@router.post("/contracts/expire", response_model=list[ContractResponse])
async def expire_contracts(
    body: ExpireContractsRequest,
    actor: Actor = Depends(get_actor),
    flow: ContractFlow = Depends(get_contract_flow),
) -> list[ContractResponse]:
    """Expire signed or active contracts past their expiry date."""
    contracts = await flow.expire_due_contracts(actor, as_of=body.as_of)
    return [ContractResponse.model_validate(c) for c in contracts]


@router.get("/contracts/{contract_id}", response_model=ContractResponse)
async def get_contract(
    contract_id: str,
    actor: Actor = Depends(get_actor),
    flow: ContractFlow = Depends(get_contract_flow),
) -> ContractResponse:
    contract = await flow.get_contract(actor, contract_id)
    return ContractResponse.model_validate(contract)


@router.patch("/contracts/{contract_id}", response_model=ContractResponse)
async def update_contract(
    contract_id: str,
    body: UpdateContractRequest,
    actor: Actor = Depends(get_actor),
    flow: ContractFlow = Depends(get_contract_flow),
) -> ContractResponse:
    contract = await flow.update_draft(
        actor, contract_id, **body.model_dump(exclude_unset=True)
    )
    return ContractResponse.model_validate(contract)


@router.post(
    "/contracts/{contract_id}/transitions", response_model=ContractResponse
)
async def transition_contract(
    contract_id: str,
    body: TransitionRequest,
    actor: Actor = Depends(get_actor),
    flow: ContractFlow = Depends(get_contract_flow),
) -> ContractResponse:
    contract = await flow.transition(actor, contract_id, body.target_status)
    return ContractResponse.model_validate(contract)


@router.delete("/contracts/{contract_id}", response_model=DeletedResponse)
async def delete_contract(
    contract_id: str,
    actor: Actor = Depends(get_actor),
    flow: ContractFlow = Depends(get_contract_flow),
) -> DeletedResponse:
    await flow.delete_contract(actor, contract_id)
    return DeletedResponse(id=contract_id)
