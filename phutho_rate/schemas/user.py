from pydantic import BaseModel, Field

from phutho_rate.scoring.types import Role


class UserOut(BaseModel):
    id: str
    name: str
    email: str
    avatar: str | None
    role: Role
    agency_id: str | None
    department: str
    position: str


class PeerOut(BaseModel):
    """Minimal user information for peer lists"""
    id: str
    name: str
    avatar: str | None
    department: str
    position: str


class RoleUpdate(BaseModel):
    role: Role


class AvatarUpdate(BaseModel):
    avatar: str = Field(min_length=1)
