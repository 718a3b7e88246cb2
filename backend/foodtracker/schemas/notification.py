from pydantic import BaseModel, Field


class RegisterPushTokenRequest(BaseModel):
    push_token: str = Field(min_length=1)


class RegisterPushTokenResponse(BaseModel):
    success: bool
    message: str


class ItemFailureResponse(BaseModel):
    item_id: str
    reason: str


class RunSummaryResponse(BaseModel):
    run_date: str
    eligible: int
    sent: int
    skipped: int
    failed: int
    failures: list[ItemFailureResponse]


class TriggerResponse(BaseModel):
    success: bool
    message: str
    summary: RunSummaryResponse
