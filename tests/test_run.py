import pytest

from headspin_qoe.config import HeadspinConfig
from headspin_qoe.exceptions import (
    ConfigurationError,
    DeviceLockError,
    DeviceUnlockError,
    LabelFlushError,
    LabelSubmitError,
    SessionStartError,
    SessionStopError,
)
from headspin_qoe.labels import LabelQueue
from headspin_qoe.run import RecordingRun


@pytest.fixture
def recording(session, clock) -> RecordingRun:
    return RecordingRun(session, LabelQueue(clock=clock), pre_test_buffer_seconds=0, settle_seconds=0)


@pytest.mark.asyncio
async def test_setup_locks_then_starts(recording, fake_api) -> None:
    await recording.setup()

    assert fake_api.calls() == [("POST", "/devices/lock"), ("POST", "/sessions")]
    assert recording.session.is_running


@pytest.mark.asyncio
async def test_setup_unlocks_when_start_fails(recording, fake_api) -> None:
    fake_api.fail("POST", "/sessions", 500, json={"message": "no capacity"})

    with pytest.raises(SessionStartError):
        await recording.setup()

    assert fake_api.calls() == [("POST", "/devices/lock"), ("POST", "/sessions"), ("POST", "/devices/unlock")]


@pytest.mark.asyncio
async def test_setup_does_not_unlock_when_lock_fails(recording, fake_api) -> None:
    fake_api.fail("POST", "/devices/lock", 423, json={"status_code": 423})

    with pytest.raises(DeviceLockError):
        await recording.setup()

    assert fake_api.calls() == [("POST", "/devices/lock")]


@pytest.mark.asyncio
async def test_teardown_unlocks_even_when_stop_fails(recording, fake_api) -> None:
    await recording.setup()
    fake_api.fail("PATCH", "/sessions/s1", 500, json={"message": "stuck"})

    with pytest.raises(SessionStopError):
        await recording.teardown()

    assert ("POST", "/devices/unlock") in fake_api.calls()
    assert fake_api.calls("POST", "/sessions/s1/label/add") == []


@pytest.mark.asyncio
async def test_unlock_failure_masks_stop_failure(recording, fake_api) -> None:
    await recording.setup()
    fake_api.fail("PATCH", "/sessions/s1", 500)
    fake_api.fail("POST", "/devices/unlock", 500)

    with pytest.raises(DeviceUnlockError) as exc_info:
        await recording.teardown()

    assert isinstance(exc_info.value.__context__, SessionStopError)


@pytest.mark.asyncio
async def test_full_run_pushes_labels(recording, fake_api, clock) -> None:
    await recording.setup()

    clock.advance(1000)
    await recording.page_load_test("App open", lambda: clock.advance(2000))
    with recording.labels.user({"name": "Browse", "screen": "home"}):
        clock.advance(500)

    submitted = await recording.teardown()

    assert len(submitted) == 2
    assert fake_api.calls() == [
        ("POST", "/devices/lock"),
        ("POST", "/sessions"),
        ("PATCH", "/sessions/s1"),
        ("POST", "/devices/unlock"),
        ("POST", "/sessions/s1/label/add"),
        ("POST", "/sessions/s1/label/add"),
    ]
    bodies = sorted(fake_api.bodies("POST", "/sessions/s1/label/add"), key=lambda body: body["name"])
    assert bodies == [
        {
            "name": "App open",
            "label_type": "page-load-request",
            "category": "Performance testing",
            "start_time": 1.0,
            "end_time": 3.0,
        },
        {
            "name": "Browse",
            "label_type": "user",
            "start_time": 3.0,
            "end_time": 3.5,
            "data": {"screen": "home"},
        },
    ]


@pytest.mark.asyncio
async def test_flush_skips_labels_that_never_ran(recording, fake_api) -> None:
    await recording.setup()
    recording.labels.page_load("never entered")
    await recording.user_label("ran", lambda: None)

    submitted = await recording.teardown()

    assert [label.name for label in submitted] == ["ran"]
    assert len(fake_api.bodies("POST", "/sessions/s1/label/add")) == 1


@pytest.mark.asyncio
async def test_flush_waits_for_all_and_reports_failures(recording, fake_api) -> None:
    await recording.setup()
    for name in ("one", "two", "three"):
        await recording.user_label(name, lambda: None)
    await recording.session.stop()
    fake_api.fail("POST", "/sessions/s1/label/add", 500, json={"message": "rejected"})

    with pytest.raises(LabelFlushError) as exc_info:
        await recording.flush_labels()

    assert len(fake_api.bodies("POST", "/sessions/s1/label/add")) == 3
    assert exc_info.value.total == 3
    assert len(exc_info.value.errors) == 3
    assert all(isinstance(error, LabelSubmitError) for error in exc_info.value.errors)


def test_sync_wrappers_run_each_phase_in_own_loop(recording, fake_api) -> None:
    recording.setup_sync()
    recording.labels.user("sync")
    with recording.labels.user("sync step"):
        pass

    submitted = recording.teardown_sync()

    assert [label.name for label in submitted] == ["sync step"]
    assert fake_api.calls("POST", "/devices/unlock") == [("POST", "/devices/unlock")]


def test_from_config_requires_credentials() -> None:
    with pytest.raises(ConfigurationError):
        RecordingRun.from_config(HeadspinConfig(token="abc"))


@pytest.mark.asyncio
async def test_from_config_uses_settings(fake_api) -> None:
    config = HeadspinConfig(
        token="abc",
        device_id="device-42",
        api_host="api.example.test",
        ui_host="ui.example.test",
        pre_test_buffer_seconds=0,
        settle_seconds=0,
    )
    recording = RecordingRun.from_config(config, transport=fake_api.transport())

    await recording.setup()
    await recording.session.stop()
    await recording.session.aclose()

    assert recording.pre_test_buffer_seconds == 0
    assert fake_api.requests[0].url.host == "api.example.test"
    assert recording.session.session_url == "https://ui.example.test/sessions/s1/waterfall"
