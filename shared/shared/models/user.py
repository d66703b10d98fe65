from pydantic import BaseModel, ConfigDict, Field

from shared.constants import Role


class CurrentUser(BaseModel):
    """User context from JWT; ``id`` is the numeric actor id issued by identity."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: int = Field(gt=0)
    username: str = ""
    roles: list[Role] = Field(default_factory=list)

    @property
    def is_admin(self) -> bool:
        return any(r in (Role.ADMIN, Role.SUPER_ADMIN) for r in self.roles)
