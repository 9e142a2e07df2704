"""Vehicle and media models."""

from __future__ import annotations

import re
from enum import StrEnum
from typing import Any

from pydantic import Field, field_validator

from evledger.models._base import LedgerBaseModel, LedgerDate, new_id

_YOUTUBE_ID_RE = re.compile(r"^.*(youtu\.be/|v/|u/\w/|embed/|watch\?v=|&v=)([^#&?]*).*")


class VehicleType(StrEnum):
    TWO_WHEELER = "2-wheeler"
    FOUR_WHEELER = "4-wheeler"


class ImageItem(LedgerBaseModel):
    """An uploaded picture, stored inline as a data URL."""

    id: str = Field(default_factory=new_id)
    data_url: str


class VideoLink(LedgerBaseModel):
    id: str = Field(default_factory=new_id)
    url: str

    @property
    def youtube_id(self) -> str | None:
        """The 11-character YouTube video id, if *url* points at one."""
        match = _YOUTUBE_ID_RE.match(self.url)
        if match and len(match.group(2)) == 11:
            return match.group(2)
        return None


class ReviewLink(LedgerBaseModel):
    id: str = Field(default_factory=new_id)
    title: str
    url: str


class SocialLink(LedgerBaseModel):
    id: str = Field(default_factory=new_id)
    platform: str
    url: str


class Vehicle(LedgerBaseModel):
    """A vehicle registered by the owner.

    Vehicles are the only records that may be edited after creation; edits
    produce a new value via :meth:`model_copy` or the ``with_*`` helpers and
    are stored with :meth:`evledger.ledger.LedgerState.update_vehicle`.
    """

    id: str = Field(default_factory=new_id)
    make: str
    model: str
    variant: str | None = None
    vehicle_type: VehicleType = VehicleType.FOUR_WHEELER
    year: int = Field(gt=0)
    battery_capacity_kwh: float = Field(ge=0)
    vin: str | None = None
    purchase_date: LedgerDate
    initial_odometer: float = Field(default=0.0, ge=0)
    initial_notes: str | None = None
    images: tuple[ImageItem, ...] = ()
    videos: tuple[VideoLink, ...] = ()
    reviews: tuple[ReviewLink, ...] = ()
    socials: tuple[SocialLink, ...] = ()

    @property
    def display_name(self) -> str:
        parts = [str(self.year), self.make, self.model]
        if self.variant:
            parts.append(self.variant)
        return " ".join(parts)

    @field_validator("images", mode="before")
    @classmethod
    def _upgrade_bare_images(cls, value: Any) -> Any:
        # Older snapshots stored images as bare data-URL strings.
        if not isinstance(value, (list, tuple)):
            return value
        return [{"dataUrl": item} if isinstance(item, str) else item for item in value]

    def with_image(self, data_url: str) -> Vehicle:
        return self.model_copy(update={"images": (*self.images, ImageItem(data_url=data_url))})

    def with_video(self, url: str) -> Vehicle:
        return self.model_copy(update={"videos": (*self.videos, VideoLink(url=url))})

    def with_review(self, title: str, url: str) -> Vehicle:
        return self.model_copy(update={"reviews": (*self.reviews, ReviewLink(title=title, url=url))})

    def with_social(self, platform: str, url: str) -> Vehicle:
        return self.model_copy(update={"socials": (*self.socials, SocialLink(platform=platform, url=url))})

    def without_media(self, media_id: str) -> Vehicle:
        """Return a copy with the media item *media_id* removed from every collection."""
        return self.model_copy(
            update={
                "images": tuple(item for item in self.images if item.id != media_id),
                "videos": tuple(item for item in self.videos if item.id != media_id),
                "reviews": tuple(item for item in self.reviews if item.id != media_id),
                "socials": tuple(item for item in self.socials if item.id != media_id),
            }
        )
