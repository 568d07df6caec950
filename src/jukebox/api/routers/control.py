"""Transport control endpoints used by the web UI.

These only QUEUE commands. The response comes back before the device has done
anything; observers get a `loading` state right away and the real state once the
device reports it.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError

from jukebox.api.dependencies import get_command_queue, get_playback
from jukebox.api.schemas import ControlResponse, PlayRequest
from jukebox.application.services import CommandQueue, PlaybackStateMachine
from jukebox.domain.entities import Command, CommandVerb, validate_slot

logger = logging.getLogger(__name__)

router = APIRouter()


async def _queue(
    queue: CommandQueue,
    playback: PlaybackStateMachine,
    verb: CommandVerb,
    player: int | None = None,
    disc: int | None = None,
    track: int | None = None,
) -> ControlResponse:
    command = await queue.enqueue(verb, player=player, disc=disc, track=track)
    await _announce(playback, command)
    return ControlResponse(command_id=command.id)


# Yo, the loading flash is cosmetic. If it can't be built the command is still queued and
# the device will pick it up, so a failure here must not turn into an error response.
async def _announce(playback: PlaybackStateMachine, command: Command) -> None:
    try:
        await playback.announce_command(command)
    except SQLAlchemyError as e:
        logger.warning("Could not announce command %s: %s", command.id, e)


@router.post("/play")
async def play(
    body: PlayRequest,
    queue: CommandQueue = Depends(get_command_queue),
    playback: PlaybackStateMachine = Depends(get_playback),
) -> ControlResponse:
    """Play a disc, starting at `track` (default 1)."""
    validate_slot(body.player, body.disc)
    return await _queue(
        queue, playback, CommandVerb.PLAY, body.player, body.disc, body.track
    )


@router.post("/pause")
async def pause(
    queue: CommandQueue = Depends(get_command_queue),
    playback: PlaybackStateMachine = Depends(get_playback),
) -> ControlResponse:
    return await _queue(queue, playback, CommandVerb.PAUSE)


@router.post("/stop")
async def stop(
    queue: CommandQueue = Depends(get_command_queue),
    playback: PlaybackStateMachine = Depends(get_playback),
) -> ControlResponse:
    return await _queue(queue, playback, CommandVerb.STOP)


@router.post("/next")
async def next_track(
    queue: CommandQueue = Depends(get_command_queue),
    playback: PlaybackStateMachine = Depends(get_playback),
) -> ControlResponse:
    return await _queue(queue, playback, CommandVerb.NEXT)


@router.post("/previous")
async def previous_track(
    queue: CommandQueue = Depends(get_command_queue),
    playback: PlaybackStateMachine = Depends(get_playback),
) -> ControlResponse:
    return await _queue(queue, playback, CommandVerb.PREVIOUS)
