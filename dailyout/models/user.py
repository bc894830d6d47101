from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class User(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    created_at: datetime
    email: Optional[str] = None
    has_password: bool = False

    @property
    def is_anonymous(self) -> bool:
        return self.email is None

    def public_dict(self) -> dict:
        return {"id": self.id, "email": self.email}
