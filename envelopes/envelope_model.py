from __future__ import annotations

from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt

from db.models import MAX_INTEGER


class EnvelopeIn(BaseModel):
    title: str = Field(min_length=1)
    budget: StrictInt = Field(ge=0, le=MAX_INTEGER)


class Envelope(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    budget: int


class TransferIn(BaseModel):
    amount: StrictInt = Field(gt=0, le=MAX_INTEGER)


class TransferResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    source: Envelope = Field(alias="from")
    destination: Envelope = Field(alias="to")


class EnvelopeResponse(BaseModel):
    status: str = "Success"
    message: str
    data: Optional[Union[Envelope, List[Envelope], TransferResult]] = None
