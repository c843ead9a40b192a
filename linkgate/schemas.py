from pydantic import BaseModel, ConfigDict, Field

from linkgate.models import Role


class SignupIn(BaseModel):
    username: str = Field(min_length=1, max_length=150)
    password: str = Field(min_length=1)
    role: Role = Role.user

class LoginIn(BaseModel):
    username: str
    password: str

class Token(BaseModel):
    token: str
    token_type: str = "bearer"

class ConvertIn(BaseModel):
    link: str = Field(min_length=1)

class ConvertOut(BaseModel):
    code: int = 200
    converted_link: str
    short_code: str
    lifespan: int = 0

class LinkUpdate(BaseModel):
    original_link: str
    converted_link: str

class LinkOut(BaseModel):
    id: int
    original_link: str
    converted_link: str

    model_config = ConfigDict(from_attributes=True)

class OwnerLinks(BaseModel):
    username: str
    list_of_converted_links: list[LinkOut]

class AdminLinks(BaseModel):
    code: int = 200
    users: dict[str, OwnerLinks]

class MessageOut(BaseModel):
    message: str
