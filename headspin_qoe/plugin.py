"""
pytest plugin that records a test run as a HeadSpin capture session.

Enable with ``--headspin``. The device is locked and the session started in
pytest_sessionstart; in pytest_sessionfinish the session is stopped, the device
unlocked and all labels pushed. Tests reach the run through the ``headspin``
fixture, and ``@pytest.mark.headspin_label`` records a whole test as a user label.
"""

import logging
from typing import Optional

import pytest

from .config import HeadspinConfig
from .exceptions import ConfigurationError, HeadspinError
from .labels import Label, LabelKind
from .logging_config import remove_console_handler, setup_basic_logging
from .run import RecordingRun

logger = logging.getLogger(__name__)

RUN_KEY = pytest.StashKey[RecordingRun]()
STARTED_KEY = pytest.StashKey[bool]()
LABEL_KEY = pytest.StashKey[Label]()

MARKER = "headspin_label"


def pytest_addhooks(pluginmanager):
    from . import hooks

    pluginmanager.add_hookspecs(hooks)


def pytest_addoption(parser):
    group = parser.getgroup("headspin", "HeadSpin QoE recording")
    group.addoption(
        "--headspin",
        action="store_true",
        default=False,
        help="Record the test run as a HeadSpin capture session.",
    )
    group.addoption(
        "--headspin-rc",
        default=None,
        metavar="PATH",
        help="Read HeadSpin token and device id from this rc file.",
    )
    group.addoption(
        "--headspin-log-level",
        default="INFO",
        metavar="LEVEL",
        help="Log level for HeadSpin API messages (default: INFO).",
    )


def pytest_configure(config):
    config.addinivalue_line(
        "markers",
        f"{MARKER}(title=None, **options): record the whole test as a HeadSpin user label.",
    )
    if not config.getoption("headspin"):
        return

    level = logging.getLevelName(config.getoption("headspin_log_level").upper())
    setup_basic_logging(level if isinstance(level, int) else logging.INFO)

    try:
        settings = HeadspinConfig.load(rc_path=config.getoption("headspin_rc"))
        transport = config.hook.pytest_headspin_transport(config=config)
        config.stash[RUN_KEY] = RecordingRun.from_config(settings, transport=transport)
    except ConfigurationError as e:
        raise pytest.UsageError(str(e)) from e


def pytest_sessionstart(session):
    run = session.config.stash.get(RUN_KEY, None)
    if run is None:
        return
    try:
        run.setup_sync()
    except HeadspinError as e:
        pytest.exit(f"HeadSpin setup failed: {e}", returncode=pytest.ExitCode.INTERNAL_ERROR)
    session.config.stash[STARTED_KEY] = True


def pytest_collection_modifyitems(session, config, items):
    run = config.stash.get(RUN_KEY, None)
    if run is None:
        return
    # Registered at collection time so the label exists before the test runs
    for item in items:
        marker = item.get_closest_marker(MARKER)
        if marker is None:
            continue
        options = dict(marker.kwargs)
        title = options.pop("title", None)
        if marker.args:
            title = marker.args[0]
        options["name"] = title or item.name
        item.stash[LABEL_KEY] = run.labels.create(LabelKind.USER, options)


@pytest.hookimpl(wrapper=True)
def pytest_runtest_call(item):
    label = item.stash.get(LABEL_KEY, None)
    if label is None:
        return (yield)
    label.start()
    try:
        return (yield)
    finally:
        label.end()


def pytest_sessionfinish(session, exitstatus):
    config = session.config
    run = config.stash.get(RUN_KEY, None)
    if run is None or not config.stash.get(STARTED_KEY, False):
        return
    try:
        run.teardown_sync()
    except HeadspinError as e:
        logger.error(f"HeadSpin teardown failed: {e}")
        reporter = config.pluginmanager.get_plugin("terminalreporter")
        if reporter is not None:
            reporter.write_line(f"HeadSpin teardown failed: {e}", red=True)
        if session.exitstatus == pytest.ExitCode.OK:
            session.exitstatus = pytest.ExitCode.TESTS_FAILED


@pytest.fixture
def headspin(request) -> RecordingRun:
    """The active HeadSpin recording run."""
    run: Optional[RecordingRun] = request.config.stash.get(RUN_KEY, None)
    if run is None:
        pytest.skip("HeadSpin recording is disabled (run with --headspin)")
    return run


def pytest_unconfigure(config):
    if config.getoption("headspin", False):
        remove_console_handler()
