from pydantic import BaseModel


class DbVersion(BaseModel):
    db: str
    version: int


class AuthSeed(BaseModel):
    id: str = "default"
    seed: str
