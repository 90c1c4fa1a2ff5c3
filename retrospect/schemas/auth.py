from pydantic import BaseModel


class UnlockRequest(BaseModel):
    password: str


class EditTokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
