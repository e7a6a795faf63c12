"""
tests/conftest.py
Shared fixtures for plugins manager tests.
Provides an isolated JMeter home, an in-memory repository client and a
loaded catalog built on top of them.
"""

import copy
import os
import threading

import pytest

from core.catalog import PluginCatalog
from core.changes import ChangeApplicator
from core.installed_state import InstalledStateStore
from core.progress import InfoLine, ProgressTick, _SinkBase


REPO = [
    {
        "id": "jpgc-common",
        "name": "Common Libraries",
        "canUninstall": True,
        "versions": {
            "0.1": {"downloadUrl": "https://repo.test/jmeter-plugins-cmn-jmeter-0.1.jar"},
            "0.3": {"downloadUrl": "https://repo.test/jmeter-plugins-cmn-jmeter-0.3.jar"},
        },
    },
    {
        "id": "jp@gc-CompositeLoadBalancer",
        "name": "Composite Load Balancer",
        "componentClasses": ["kg.apc.jmeter.samplers.CompositeLoadBalancer"],
        "versions": {
            "2.0": {"downloadUrl": "https://repo.test/clb-2.0.jar",
                    "depends": ["jpgc-common"]},
            "2.1": {"downloadUrl": "https://repo.test/clb-2.1.jar",
                    "depends": ["jpgc-common"]},
        },
    },
    {
        "id": "jp@gc-CMDStep",
        "name": "Command Step",
        "componentClasses": ["kg.apc.jmeter.samplers.CMDStep"],
        "versions": {
            "1.0": {"downloadUrl": "https://repo.test/cmdstep-1.0.jar"},
        },
    },
    {
        "id": "jpgc-casutg",
        "name": "Custom Thread Groups",
        "componentClasses": [
            "kg.apc.jmeter.threads.UltimateThreadGroup",
            "kg.apc.jmeter.threads.SteppingThreadGroup",
        ],
        "versions": {
            "2.9": {"downloadUrl": "https://repo.test/casutg-2.9.jar",
                    "depends": ["jpgc-common"]},
            "2.10": {"downloadUrl": "https://repo.test/casutg-2.10.jar",
                     "depends": ["jpgc-common"]},
        },
    },
    {
        "id": "jpgc-plugins-manager",
        "name": "Plugins Manager",
        "canUninstall": False,
        "versions": {
            "1.3": {"downloadUrl": "https://repo.test/plugins-manager-1.3.jar"},
        },
    },
]


class FakeRepoClient:
    """In-memory stand-in for RepoClient."""

    def __init__(self, descriptors=None, payload=b"jar-bytes"):
        self.descriptors = copy.deepcopy(REPO if descriptors is None else descriptors)
        self.payload = payload
        self.fetch_calls = []
        self.downloads = []
        self.stats = []

    def fetch_catalog(self, installed=None):
        self.fetch_calls.append(installed)
        return copy.deepcopy(self.descriptors)

    def download(self, url, dest, on_progress=None):
        os.makedirs(os.path.dirname(dest), exist_ok=True)
        with open(dest, "wb") as f:
            f.write(self.payload)
        if on_progress:
            on_progress(50)
            on_progress(100)
        self.downloads.append(url)
        return dest

    def report_stats(self, payload):
        self.stats.append(payload)


class SpyApplicator:
    """Records each apply call with the change set pending at that moment."""

    def __init__(self):
        self.calls = []

    def apply(self, catalog, sink, send_stats=False, restart_hook=None):
        self.calls.append({
            "changes": catalog.pending_changes(),
            "sink": sink,
            "send_stats": send_stats,
            "restart_hook": restart_hook,
        })


class RecordingProgressSink(_SinkBase):
    """Keeps every progress event in order."""

    def __init__(self):
        self.events = []
        self._lock = threading.Lock()

    def on_progress(self, text):
        with self._lock:
            self.events.append(ProgressTick(text))

    def on_info(self, text):
        with self._lock:
            self.events.append(InfoLine(text))

    @property
    def info_lines(self):
        return [e.text for e in self.events if isinstance(e, InfoLine)]

    @property
    def progress_lines(self):
        return [e.text for e in self.events if isinstance(e, ProgressTick)]


@pytest.fixture
def tmp_home(tmp_path):
    """Isolated JMeter home with an empty lib/ext."""
    os.makedirs(tmp_path / "lib" / "ext", exist_ok=True)
    return tmp_path


@pytest.fixture
def repo_client():
    return FakeRepoClient()


@pytest.fixture
def state_store(tmp_home):
    return InstalledStateStore(str(tmp_home / "lib" / "ext" / ".pmgr_installed.json"))


@pytest.fixture
def make_catalog(repo_client, state_store, tmp_home):
    """Build a loaded catalog; ``applicator`` defaults to the real one."""

    def _make(applicator=None, send_repo_stats=False):
        lib_dir = str(tmp_home / "lib" / "ext")
        factory = (lambda: applicator) if applicator is not None else \
            (lambda: ChangeApplicator(repo_client, state_store, lib_dir))
        catalog = PluginCatalog(repo_client, state_store, applicator_factory=factory)
        return catalog.load(send_repo_stats=send_repo_stats)

    return _make


@pytest.fixture
def catalog(make_catalog):
    return make_catalog()


@pytest.fixture
def write_plan(tmp_path):
    """Write a minimal .jmx test plan using the given component classes."""

    def _write(name, classes):
        elements = "\n".join(
            f'      <{cls.rsplit(".", 1)[-1]} guiclass="{cls}Gui" testclass="{cls}" '
            f'testname="{cls}" enabled="true"/>'
            for cls in classes
        )
        content = (
            '<?xml version="1.0" encoding="UTF-8"?>\n'
            '<jmeterTestPlan version="1.2" properties="5.0" jmeter="5.6">\n'
            '  <hashTree>\n'
            '    <TestPlan guiclass="TestPlanGui" testclass="TestPlan" testname="Plan"/>\n'
            '    <hashTree>\n'
            f'{elements}\n'
            '    </hashTree>\n'
            '  </hashTree>\n'
            '</jmeterTestPlan>\n'
        )
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return str(path)

    return _write
