import math

import pytest

from conftest import FakeDisplayChannel
from mirrorshare.application.playback_relay import PlaybackRelay
from mirrorshare.domain.errors import InvalidAction, InvalidParameter, InvalidReference
from mirrorshare.domain.models import PlaybackState


URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"


@pytest.fixture
def display() -> FakeDisplayChannel:
    return FakeDisplayChannel()


@pytest.fixture
def relay(display) -> PlaybackRelay:
    return PlaybackRelay(PlaybackState(), display)


async def test_play_updates_state_and_emits_start(relay, display):
    result = await relay.play(URL)
    assert result == {"videoId": "dQw4w9WgXcQ"}
    state = relay.status()
    assert state.playing is True
    assert state.last_video_id == "dQw4w9WgXcQ"
    assert state.last_url == URL
    assert display.commands == [("start-playback", {"videoId": "dQw4w9WgXcQ", "url": URL})]


@pytest.mark.parametrize("bad", ["not a url", "", None, "https://youtube.com/watch?v=short"])
async def test_play_rejects_invalid_reference(relay, display, bad):
    with pytest.raises(InvalidReference):
        await relay.play(bad)
    assert relay.status().playing is False
    assert display.commands == []


async def test_stop_keeps_last_video(relay, display):
    await relay.play(URL)
    await relay.stop("manual")
    state = relay.status()
    assert state.playing is False
    assert state.last_video_id == "dQw4w9WgXcQ"
    assert display.commands[-1] == ("stop-playback", {"reason": "manual"})


async def test_unknown_stop_reason_is_only_diagnostic(relay, display):
    await relay.play(URL)
    await relay.stop("cosmic-ray")
    assert relay.status().playing is False
    assert display.commands[-1] == ("stop-playback", {"reason": "cosmic-ray"})


async def test_display_stopped_report_clears_playing(relay, display):
    await relay.play(URL)
    relay.display_stopped("ended")
    assert relay.status().playing is False
    assert display.kinds() == ["start-playback"]


async def test_rewind_defaults_to_ten_seconds(relay, display):
    implicit = await relay.control("rewind")
    explicit = await relay.control("rewind", 10)
    assert implicit == explicit == {"action": "rewind", "seconds": 10}
    assert display.commands[0] == display.commands[1] == ("video-control", {"action": "rewind", "seconds": 10})


async def test_pause_and_resume_carry_no_seconds(relay, display):
    assert await relay.control("pause", 30) == {"action": "pause", "seconds": None}
    await relay.control("resume")
    assert display.commands == [
        ("video-control", {"action": "pause"}),
        ("video-control", {"action": "resume"}),
    ]


async def test_forward_accepts_fractional_seconds(relay):
    assert (await relay.control("forward", 2.5))["seconds"] == 2.5


@pytest.mark.parametrize("seconds", [0, -5, math.inf, math.nan, "10", True])
async def test_seek_rejects_bad_seconds(relay, display, seconds):
    with pytest.raises(InvalidParameter):
        await relay.control("forward", seconds)
    assert display.commands == []


@pytest.mark.parametrize("action", ["stop", "", None, "REWIND"])
async def test_control_rejects_unknown_action(relay, action):
    with pytest.raises(InvalidAction):
        await relay.control(action)


async def test_set_options_merges_partially(relay, display):
    state, updated = await relay.set_options(quality={"target": "1080p"})
    assert updated is True
    assert state.quality.target == "1080p"
    assert state.quality.floor is None and state.quality.ceiling is None and state.quality.lock is False
    assert state.caption.enabled is False and state.caption.lang == "en"
    assert display.commands == [
        ("apply-options", {"quality": {"target": "1080p", "floor": None, "ceiling": None, "lock": False}})
    ]


async def test_set_options_without_changes_emits_nothing(relay, display):
    state, updated = await relay.set_options(caption={"enabled": False, "lang": "en"}, quality={})
    assert updated is False
    assert display.commands == []


async def test_set_options_ignores_unknown_fields(relay):
    state, updated = await relay.set_options(caption={"color": "red"})
    assert updated is False
    assert not hasattr(state.caption, "color")


async def test_set_options_rejects_non_objects(relay):
    with pytest.raises(InvalidParameter):
        await relay.set_options(caption="on")


async def test_status_is_a_snapshot(relay):
    snapshot = relay.status()
    snapshot.playing = True
    snapshot.quality.target = "144p"
    assert relay.status().playing is False
    assert relay.status().quality.target == "auto"


@pytest.mark.parametrize("action", ["fullscreen", "windowed", "toggle"])
async def test_overlay_mode(relay, display, action):
    await relay.set_overlay_mode(action)
    assert display.commands == [("set-overlay-mode", {"action": action})]


async def test_overlay_mode_rejects_unknown(relay):
    with pytest.raises(InvalidAction):
        await relay.set_overlay_mode("minimize")
