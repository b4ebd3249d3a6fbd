from pydantic import BaseModel


class OrderAcceptedResponse(BaseModel):
    status: str = "ACCEPTED"
    message: str = "Order received"
    message_id: str


class OrderErrorResponse(BaseModel):
    error: str
    reason: str | None = None
    message_id: str | None = None
