"""User profile Pydantic schemas."""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProfileUpdate(BaseModel):
    """Fields a user may set on their own profile."""

    username: str | None = Field(None, min_length=1, max_length=40)
    display_name: str | None = Field(None, max_length=80)
    bio: str | None = Field(None, max_length=500)
    interests: list[str] | None = Field(None, max_length=20)

    @field_validator("bio")
    @classmethod
    def strip_bio(cls, v: str | None) -> str | None:
        """Trim surrounding whitespace; a blank bio clears it."""
        if v is None:
            return v
        return v.strip() or None

    @field_validator("interests")
    @classmethod
    def normalize_interests(cls, v: list[str] | None) -> list[str]:
        """Drop blank and repeated entries, keeping the first occurrence."""
        if v is None:
            return []
        seen: list[str] = []
        for interest in v:
            interest = interest.strip()
            if interest and interest not in seen:
                seen.append(interest)
        return seen


class UserResponse(BaseModel):
    """Public profile including the user's aura."""

    user_id: str
    username: str | None
    display_name: str | None
    bio: str | None
    interests: list[str]
    aura_total: int

    model_config = ConfigDict(from_attributes=True)
