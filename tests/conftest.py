"""
Shared pytest fixtures for the XML cache test suite.

Every test runs under one QCoreApplication and writes logs to a temporary
directory. Cache tests use ManualDelayedActions and FakeWatchTask so that
debounced actions and file system events are driven by the test itself.

Usage in tests:
    def test_something(cache, sample_file, events, actions):
        cache.load(str(sample_file))
        actions.fire("reload")
        assert events[-1].kind == ModelChangeType.RELOADED
"""

import pytest
from PyQt6.QtCore import QCoreApplication

from tests.fakes import FakeWatchTask, FileProbe, ManualDelayedActions


SAMPLE_XML = """<?xml version="1.0" encoding="utf-8"?>
<?xml-stylesheet type="text/xsl" href="view.xsl"?>
<!-- catalog -->
<catalog xmlns:x="urn:example">
  <book id="1">
    <title>Python</title>
  </book>
  <x:note>hello</x:note>
</catalog>
"""


@pytest.fixture(scope="session", autouse=True)
def qapp(tmp_path_factory):
    """Session-wide Qt application with logging redirected to a temp dir."""
    from infrastructure.utils.logger import setup_logger

    setup_logger(log_dir=tmp_path_factory.mktemp("logs"))
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


@pytest.fixture
def config(tmp_path):
    """ConfigManager backed by a temp file (defaults, nothing on disk yet)."""
    from infrastructure.config.config_manager import ConfigManager

    manager = ConfigManager(tmp_path / "config.json")
    manager.load_config()
    return manager


@pytest.fixture
def actions():
    return ManualDelayedActions()


@pytest.fixture
def watch_task():
    return FakeWatchTask()


@pytest.fixture
def probe():
    return FileProbe()


@pytest.fixture
def sample_file(tmp_path):
    """The sample catalog document written to disk."""
    path = tmp_path / "sample.xml"
    path.write_text(SAMPLE_XML, encoding="utf-8")
    return path


@pytest.fixture
def cache(config, actions, watch_task, probe):
    """XmlCache wired to the fakes; disposed after the test."""
    from application.xml_cache import XmlCache

    instance = XmlCache(config, actions, watch_task=watch_task, file_probe=probe)
    yield instance
    instance.dispose()


@pytest.fixture
def events(cache):
    """List collecting every model_changed notification of ``cache``."""
    received = []
    cache.model_changed.connect(received.append)
    return received
