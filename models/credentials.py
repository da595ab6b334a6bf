from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class Credentials(BaseModel):
    email: str
    password: str

    model_config = ConfigDict(frozen=True)

    def __repr__(self) -> str:
        return f"Credentials(email={self.email!r}, password='***')"
