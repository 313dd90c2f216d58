from pydantic import BaseModel, Field, field_validator


class EntityCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    cnpj: str = Field(..., min_length=14, max_length=32)

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("name must not be blank")
        return stripped
