"""API schemas for the device protocol and transport control."""

from pydantic import BaseModel, ConfigDict, Field


# Hey future me - all four fields stay Optional here. A report missing any of them is
# rejected as a whole by validate_report(), which raises the single 422 message the
# firmware prints.
class StateReport(BaseModel):
    """Playback state reported by the device after executing (or noticing) a change."""

    player: int | None = Field(default=None, description="Player unit (1 or 2)")
    disc: int | None = Field(default=None, description="Slot position (1-300)")
    track: int | None = Field(default=None, description="Track number (>= 1)")
    state: str | None = Field(default=None, description="'play', 'pause' or 'stop'")


class AckRequest(BaseModel):
    """Device acknowledgement of a polled command."""

    id: str = Field(..., min_length=1, description="Command id from the poll response")


class PlayRequest(BaseModel):
    """Play a disc (optionally from a given track)."""

    player: int | None = Field(default=None, description="Player unit (1 or 2)")
    disc: int | None = Field(default=None, description="Slot position (1-300)")
    track: int = Field(default=1, ge=1, description="Track to start at")


class SuccessResponse(BaseModel):
    success: bool = True


class ControlResponse(BaseModel):
    """Result of queueing a transport command.

    queued=True only means the command is waiting for the device; the real state
    arrives later via the `state` event.
    """

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    queued: bool = True
    command_id: str = Field(..., alias="commandId", description="Queued command id")
