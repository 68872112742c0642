"""User profile returned by the provider's userinfo endpoint."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class ProfileInfo(BaseModel):
    """Decoded profile (``given_name``, ``family_name``, ``picture``, ``name``).

    Providers omit fields the user never filled in, so only ``name`` is
    required.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str
    given_name: str | None = None
    family_name: str | None = None
    picture: str | None = None

    @property
    def picture_url(self) -> str | None:
        return self.picture
