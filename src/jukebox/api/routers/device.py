"""Device (ESP32) endpoints - command polling, acknowledgement and state reports.

Hey future me - the firmware polls GET /esp32/poll every few hundred ms. It keeps getting
the SAME oldest command until it acks it, so a lost response just means a re-delivery and
the device must treat command ids idempotently. Ack for an unknown id is still success:
the command may already have been acked and garbage collected.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends

from jukebox.api.dependencies import get_command_queue, get_playback
from jukebox.api.schemas import AckRequest, StateReport, SuccessResponse
from jukebox.application.services import CommandQueue, PlaybackStateMachine

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/esp32/poll")
async def poll_command(
    queue: CommandQueue = Depends(get_command_queue),
) -> dict[str, Any]:
    """Oldest unacknowledged command, or {} when there is nothing to do."""
    command = await queue.peek_oldest_unacknowledged()
    if command is None:
        return {}
    return command.to_device_payload()


@router.post("/esp32/ack")
async def acknowledge_command(
    body: AckRequest,
    queue: CommandQueue = Depends(get_command_queue),
) -> SuccessResponse:
    """Mark a command as executed."""
    found = await queue.acknowledge(body.id)
    if not found:
        logger.debug("Ack for unknown command %s", body.id)
    return SuccessResponse()


@router.post("/state")
async def report_state(
    body: StateReport,
    playback: PlaybackStateMachine = Depends(get_playback),
) -> SuccessResponse:
    """Apply the playback state the device reports.

    Incomplete or invalid reports are rejected with 422 and change nothing.
    """
    await playback.report_state(body.player, body.disc, body.track, body.state)
    return SuccessResponse()
