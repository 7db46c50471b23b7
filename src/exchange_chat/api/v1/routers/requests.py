from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter

from exchange_chat.api.deps import CurrentPrincipal, DispatcherDep, UoWDep
from exchange_chat.api.v1.schemas.request import (
    CreateRequestBody,
    ExchangeRequestResponse,
    RequestStatusResponse,
    RespondRequestBody,
)
from exchange_chat.services import request_service

router = APIRouter(prefix="/api/v1/requests", tags=["requests"])


@router.post("", response_model=ExchangeRequestResponse, status_code=201)
async def create_request(
    body: CreateRequestBody,
    principal: CurrentPrincipal,
    uow: UoWDep,
    dispatcher: DispatcherDep,
) -> ExchangeRequestResponse:
    request = await request_service.create_request(
        body.book_id, body.message, principal, uow, dispatcher,
    )
    return ExchangeRequestResponse.model_validate(request, from_attributes=True)


@router.get("/received", response_model=list[ExchangeRequestResponse])
async def list_received(principal: CurrentPrincipal, uow: UoWDep) -> list[ExchangeRequestResponse]:
    requests = await request_service.list_received_requests(principal, uow)
    return [ExchangeRequestResponse.model_validate(r, from_attributes=True) for r in requests]


@router.get("/sent", response_model=list[ExchangeRequestResponse])
async def list_sent(principal: CurrentPrincipal, uow: UoWDep) -> list[ExchangeRequestResponse]:
    requests = await request_service.list_sent_requests(principal, uow)
    return [ExchangeRequestResponse.model_validate(r, from_attributes=True) for r in requests]


@router.get("/check/{book_id}", response_model=RequestStatusResponse)
async def check_status(
    book_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> RequestStatusResponse:
    status = await request_service.check_request_status(book_id, principal, uow)
    return RequestStatusResponse(status=status)


@router.put("/{request_id}", response_model=ExchangeRequestResponse)
async def respond(
    request_id: UUID,
    body: RespondRequestBody,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> ExchangeRequestResponse:
    request = await request_service.respond_to_request(
        request_id, body.status, principal, uow,
    )
    return ExchangeRequestResponse.model_validate(request, from_attributes=True)
