"""Hook specifications added by the HeadSpin pytest plugin."""

import pytest


@pytest.hookspec(firstresult=True)
def pytest_headspin_transport(config):
    """Return an ``httpx.AsyncBaseTransport`` for HeadSpin API calls, or None for the default.

    Stops at first non-None result.
    """
