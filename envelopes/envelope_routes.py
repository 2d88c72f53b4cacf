from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from db.postgres import get_async_session
from envelopes.envelope_model import Envelope, EnvelopeIn, EnvelopeResponse, TransferIn, TransferResult
from envelopes.envelope_repo import EnvelopeRepositoryPg
from settings.config import settings


router = APIRouter(prefix=settings.API_PREFIX, tags=["envelopes"])


def get_envelope_repo(session: AsyncSession = Depends(get_async_session)) -> EnvelopeRepositoryPg:
    return EnvelopeRepositoryPg(session)


@router.get("", response_model=EnvelopeResponse, include_in_schema=False)
@router.get("/", response_model=EnvelopeResponse)
async def list_envelopes(repo: EnvelopeRepositoryPg = Depends(get_envelope_repo)) -> EnvelopeResponse:
    envelopes = await repo.list_all()
    return EnvelopeResponse(
        message="envelope information retrieved!",
        data=[Envelope.model_validate(e) for e in envelopes],
    )


@router.get("/{envelope_id}", response_model=EnvelopeResponse)
async def get_envelope(envelope_id: str, repo: EnvelopeRepositoryPg = Depends(get_envelope_repo)) -> EnvelopeResponse:
    envelope = await repo.get_by_id(envelope_id)
    return EnvelopeResponse(message="Envelope information retrieved!", data=Envelope.model_validate(envelope))


@router.post("", response_model=EnvelopeResponse, status_code=status.HTTP_201_CREATED, include_in_schema=False)
@router.post("/", response_model=EnvelopeResponse, status_code=status.HTTP_201_CREATED)
async def create_envelope(body: EnvelopeIn, repo: EnvelopeRepositoryPg = Depends(get_envelope_repo)) -> EnvelopeResponse:
    envelope = await repo.create(body.title, body.budget)
    return EnvelopeResponse(message="New envelope created!", data=Envelope.model_validate(envelope))


@router.put("/{envelope_id}", response_model=EnvelopeResponse)
async def update_envelope(
    envelope_id: str,
    body: EnvelopeIn,
    repo: EnvelopeRepositoryPg = Depends(get_envelope_repo),
) -> EnvelopeResponse:
    envelope = await repo.update(envelope_id, body.title, body.budget)
    return EnvelopeResponse(message="The envelope has been updated!", data=Envelope.model_validate(envelope))


@router.delete("/{envelope_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def delete_envelope(envelope_id: str, repo: EnvelopeRepositoryPg = Depends(get_envelope_repo)) -> Response:
    await repo.delete(envelope_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/transfer/{from_id}/{to_id}", response_model=EnvelopeResponse)
async def transfer_budget(
    from_id: str,
    to_id: str,
    body: TransferIn,
    repo: EnvelopeRepositoryPg = Depends(get_envelope_repo),
) -> EnvelopeResponse:
    source, dest = await repo.transfer(from_id, to_id, body.amount)
    return EnvelopeResponse(
        message=f"The budget of the envelope number {from_id} and {to_id} have been successfully updated",
        data=TransferResult(source=Envelope.model_validate(source), destination=Envelope.model_validate(dest)),
    )
