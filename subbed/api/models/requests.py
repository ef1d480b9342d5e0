"""Pydantic models for API requests and responses."""

from pydantic import BaseModel, ConfigDict, Field

from subbed.core.schemas import ChannelRef, UserSettings

# =============================================================================
# Request Models
# =============================================================================


class SubscriptionCreateRequest(BaseModel):
    """Request model for adding a subscription.

    Either ``id`` (a canonical channel ID) or ``url`` (anything the resolver
    accepts) must be given.
    """

    model_config = ConfigDict(extra="ignore")

    id: str | None = Field(
        default=None,
        description="Canonical channel ID",
        examples=["UC_x5XG1OV2P6uZZ5FSM9Ttw"],
    )
    title: str | None = Field(
        default=None,
        description="Display title (resolved when omitted)",
    )
    url: str | None = Field(
        default=None,
        description="Channel URL, handle or video link",
        examples=["https://www.youtube.com/@GoogleDevelopers"],
    )


# =============================================================================
# Response Models
# =============================================================================


class OkResponse(BaseModel):
    """Acknowledgement for mutations."""

    ok: bool = True


class SubscriptionResponse(OkResponse):
    """Response model for an added subscription."""

    subscription: ChannelRef


class SettingsResponse(BaseModel):
    """Response model wrapping the current user settings."""

    settings: UserSettings
