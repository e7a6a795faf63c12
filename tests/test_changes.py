"""
tests/test_changes.py
Change resolution (dependencies, upgrades, removals) and the applicator.
"""

import os

import pytest

from core.changes import ChangeApplicator, resolve_changes
from core.errors import ApplyFailure

from conftest import RecordingProgressSink


def _ids(changes):
    return ([p.id for p, _ in changes.install], [p.id for p in changes.uninstall])


class TestResolveChanges:

    def test_nothing_pending(self, catalog):
        assert resolve_changes(catalog).is_empty

    def test_install_pulls_dependencies(self, catalog):
        catalog.toggle_installed(catalog.get_plugin_by_id("jpgc-casutg"), True)
        changes = resolve_changes(catalog)
        installs, uninstalls = _ids(changes)
        assert installs == ["jpgc-casutg", "jpgc-common"]
        assert uninstalls == []
        assert catalog.get_plugin_by_id("jpgc-common").installed_intent is True

    def test_installed_dependency_not_reinstalled(self, state_store, make_catalog):
        state_store.record_install("jpgc-common", "0.3", ["cmn-0.3.jar"])
        catalog = make_catalog()
        catalog.toggle_installed(catalog.get_plugin_by_id("jpgc-casutg"), True)
        assert _ids(resolve_changes(catalog))[0] == ["jpgc-casutg"]

    def test_version_change_is_install(self, state_store, make_catalog):
        state_store.record_install("jpgc-common", "0.3", ["cmn-0.3.jar"])
        state_store.record_install("jpgc-casutg", "2.9", ["casutg-2.9.jar"])
        catalog = make_catalog()
        casutg = catalog.get_plugin_by_id("jpgc-casutg")
        casutg.set_candidate_version("2.10")
        catalog.toggle_installed(casutg, True)
        changes = resolve_changes(catalog)
        assert changes.install == [(casutg, "2.10")]

    def test_uninstall_takes_dependents(self, state_store, make_catalog):
        state_store.record_install("jpgc-common", "0.3", ["cmn-0.3.jar"])
        state_store.record_install("jpgc-casutg", "2.10", ["casutg-2.10.jar"])
        state_store.record_install("jp@gc-CMDStep", "1.0", ["cmdstep-1.0.jar"])
        catalog = make_catalog()
        catalog.toggle_installed(catalog.get_plugin_by_id("jpgc-common"), False)
        installs, uninstalls = _ids(resolve_changes(catalog))
        assert installs == []
        assert sorted(uninstalls) == ["jpgc-casutg", "jpgc-common"]

    def test_outdated_plugin_left_alone_on_unrelated_uninstall(self, state_store, make_catalog):
        state_store.record_install("jpgc-common", "0.3", ["cmn-0.3.jar"])
        state_store.record_install("jpgc-casutg", "2.9", ["casutg-2.9.jar"])
        state_store.record_install("jp@gc-CMDStep", "1.0", ["cmdstep-1.0.jar"])
        catalog = make_catalog()
        catalog.toggle_installed(catalog.get_plugin_by_id("jp@gc-CMDStep"), False)
        changes = resolve_changes(catalog)
        assert changes.install == []
        assert [p.id for p in changes.uninstall] == ["jp@gc-CMDStep"]

    def test_outdated_plugin_left_alone_on_unrelated_install(self, state_store, make_catalog):
        state_store.record_install("jpgc-common", "0.3", ["cmn-0.3.jar"])
        state_store.record_install("jpgc-casutg", "2.9", ["casutg-2.9.jar"])
        catalog = make_catalog()
        catalog.toggle_installed(catalog.get_plugin_by_id("jp@gc-CMDStep"), True)
        assert _ids(resolve_changes(catalog)) == (["jp@gc-CMDStep"], [])


class TestChangeApplicator:

    def _applicator(self, repo_client, state_store, tmp_home):
        return ChangeApplicator(repo_client, state_store, str(tmp_home / "lib" / "ext"))

    def test_install_downloads_and_records(self, catalog, repo_client, state_store, tmp_home):
        catalog.toggle_installed(catalog.get_plugin_by_id("jp@gc-CMDStep"), True)
        sink = RecordingProgressSink()
        self._applicator(repo_client, state_store, tmp_home).apply(catalog, sink)

        assert repo_client.downloads == ["https://repo.test/cmdstep-1.0.jar"]
        assert os.path.exists(tmp_home / "lib" / "ext" / "cmdstep-1.0.jar")
        assert state_store.installed_versions() == {"jp@gc-CMDStep": "1.0"}
        assert catalog.get_plugin_by_id("jp@gc-CMDStep").installed_version == "1.0"
        assert "Downloading jp@gc-CMDStep=1.0" in sink.info_lines
        assert "Installed jp@gc-CMDStep=1.0" in sink.info_lines
        assert sink.progress_lines == ["Downloading jp@gc-CMDStep: 50%",
                                       "Downloading jp@gc-CMDStep: 100%"]
        assert all(line.endswith("%") for line in sink.progress_lines)
        assert not any(line.endswith("%") for line in sink.info_lines)

    def test_upgrade_replaces_old_file(self, state_store, make_catalog, repo_client, tmp_home):
        lib = tmp_home / "lib" / "ext"
        (lib / "cmn-0.3.jar").write_bytes(b"x")
        (lib / "casutg-2.9.jar").write_bytes(b"old")
        state_store.record_install("jpgc-common", "0.3", ["cmn-0.3.jar"])
        state_store.record_install("jpgc-casutg", "2.9", ["casutg-2.9.jar"])
        catalog = make_catalog()
        catalog.get_plugin_by_id("jpgc-casutg").set_candidate_version("2.10")
        catalog.toggle_installed(catalog.get_plugin_by_id("jpgc-casutg"), True)

        self._applicator(repo_client, state_store, tmp_home).apply(catalog, RecordingProgressSink())
        assert not (lib / "casutg-2.9.jar").exists()
        assert (lib / "casutg-2.10.jar").exists()
        assert state_store.installed_versions()["jpgc-casutg"] == "2.10"

    def test_uninstall_removes_files(self, state_store, make_catalog, repo_client, tmp_home):
        lib = tmp_home / "lib" / "ext"
        (lib / "cmdstep-1.0.jar").write_bytes(b"x")
        state_store.record_install("jp@gc-CMDStep", "1.0", ["cmdstep-1.0.jar"])
        catalog = make_catalog()
        catalog.toggle_installed(catalog.get_plugin_by_id("jp@gc-CMDStep"), False)
        sink = RecordingProgressSink()

        self._applicator(repo_client, state_store, tmp_home).apply(catalog, sink)
        assert not (lib / "cmdstep-1.0.jar").exists()
        assert state_store.installed_versions() == {}
        assert "Uninstalling jp@gc-CMDStep" in sink.info_lines

    def test_nothing_to_do(self, catalog, repo_client, state_store, tmp_home):
        sink = RecordingProgressSink()
        hook_calls = []
        self._applicator(repo_client, state_store, tmp_home).apply(
            catalog, sink, restart_hook=lambda: hook_calls.append(1))
        assert sink.info_lines == ["Nothing to do"]
        assert repo_client.downloads == []
        assert hook_calls == []

    def test_stats_and_restart_hook(self, catalog, repo_client, state_store, tmp_home):
        catalog.toggle_installed(catalog.get_plugin_by_id("jp@gc-CMDStep"), True)
        hook_calls = []
        self._applicator(repo_client, state_store, tmp_home).apply(
            catalog, RecordingProgressSink(), send_stats=True,
            restart_hook=lambda: hook_calls.append(1))
        assert repo_client.stats == [{"install": {"jp@gc-CMDStep": "1.0"}, "uninstall": []}]
        assert hook_calls == [1]

    def test_missing_download_url(self, repo_client, state_store, tmp_home, make_catalog):
        repo_client.descriptors.append({"id": "broken", "versions": {"1.0": {}}})
        catalog = make_catalog()
        catalog.toggle_installed(catalog.get_plugin_by_id("broken"), True)
        with pytest.raises(ApplyFailure):
            self._applicator(repo_client, state_store, tmp_home).apply(catalog, RecordingProgressSink())

    def test_unknown_dependency(self, repo_client, state_store, tmp_home, make_catalog):
        repo_client.descriptors.append(
            {"id": "orphan", "versions": {"1.0": {"downloadUrl": "https://repo.test/o.jar",
                                                  "depends": ["ghost"]}}})
        catalog = make_catalog()
        catalog.toggle_installed(catalog.get_plugin_by_id("orphan"), True)
        with pytest.raises(ApplyFailure) as exc:
            self._applicator(repo_client, state_store, tmp_home).apply(catalog, RecordingProgressSink())
        assert "ghost" in str(exc.value)

    def test_download_failure_propagates(self, catalog, repo_client, state_store, tmp_home):
        def fail(url, dest, on_progress=None):
            raise ApplyFailure(f"Failed to download {url}")

        repo_client.download = fail
        catalog.toggle_installed(catalog.get_plugin_by_id("jp@gc-CMDStep"), True)
        with pytest.raises(ApplyFailure):
            self._applicator(repo_client, state_store, tmp_home).apply(catalog, RecordingProgressSink())
        assert state_store.installed_versions() == {}
