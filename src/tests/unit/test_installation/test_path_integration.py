"""Tests for PATH integration."""

import pytest

from meldoc_installer.installation.path_integration import (
    ALREADY_CONFIGURED,
    ALREADY_ON_PATH,
    CONFIGURED,
    MANUAL,
    SKIPPED,
    PathIntegrator,
    append_path_entry,
    is_on_path,
    normalize_entry,
)
from meldoc_installer.installation.platform import PlatformTag


class FakePathStore:
    """Registry stand-in."""

    description = "user PATH (registry)"

    def __init__(self, value=""):
        self.value = value
        self.writes = []

    def read(self):
        return self.value

    def write(self, value):
        self.writes.append(value)
        self.value = value


class TestPathHelpers:
    def test_normalize_trailing_separator(self):
        assert normalize_entry("/home/dev/.local/bin/") == "/home/dev/.local/bin"
        assert normalize_entry("/") == "/"

    def test_normalize_windows_is_case_insensitive(self):
        assert normalize_entry(r"C:\Tools\Meldoc\\", windows=True) == r"c:\tools\meldoc"

    def test_is_on_path_exact_entries_only(self):
        path_value = "/usr/bin:/home/dev/.local/bin/:/opt/bin"
        assert is_on_path("/home/dev/.local/bin", path_value)
        assert not is_on_path("/home/dev/.local", path_value)

    def test_is_on_path_windows(self):
        path_value = r"C:\Windows;C:\Users\Dev\AppData\Local\Programs\meldoc"
        assert is_on_path(r"c:\users\dev\appdata\local\programs\meldoc", path_value, windows=True)

    def test_append_path_entry(self):
        assert append_path_entry(r"C:\Windows;", r"C:\Tools", windows=True) == r"C:\Windows;C:\Tools"
        assert append_path_entry("", r"C:\Tools", windows=True) == r"C:\Tools"
        assert append_path_entry(r"C:\Tools", r"c:\tools\\", windows=True) is None


class TestUnixIntegration:
    """Shell startup file handling."""

    @pytest.fixture
    def target(self, fake_home):
        return fake_home / ".local" / "bin"

    def integrator(self, home, path="/usr/bin:/bin"):
        return PathIntegrator(
            "meldoc", PlatformTag("linux", "amd64"), home=home, environ={"PATH": path}
        )

    def test_already_on_path(self, fake_home, target):
        integrator = self.integrator(fake_home, path=f"/usr/bin:{target}/")

        result = integrator.integrate(target, setup=True)

        assert result.status == ALREADY_ON_PATH

    def test_hint_only_by_default(self, fake_home, target):
        rc = fake_home / ".bashrc"
        rc.write_text("alias ll='ls -l'\n")

        result = self.integrator(fake_home).integrate(target, setup=False)

        assert result.status == MANUAL
        assert result.instructions == [
            f"echo 'export PATH=\"{target}:$PATH\"' >> {rc} && source {rc}"
        ]
        assert rc.read_text() == "alias ll='ls -l'\n"

    def test_hint_suppressed(self, fake_home, target):
        result = self.integrator(fake_home).integrate(target, setup=False, show_hint=False)
        assert result.status == SKIPPED

    def test_setup_appends_once(self, fake_home, target):
        rc = fake_home / ".zshrc"
        rc.write_text("export EDITOR=vim")
        (fake_home / ".bashrc").write_text("")
        integrator = self.integrator(fake_home)

        first = integrator.integrate(target, setup=True)
        second = integrator.integrate(target, setup=True)

        assert first.status == CONFIGURED
        assert first.location == str(rc)
        assert second.status == ALREADY_CONFIGURED
        content = rc.read_text()
        assert content.count(f'export PATH="{target}:$PATH"') == 1
        assert "# Added by meldoc installer" in content
        assert content.startswith("export EDITOR=vim\n")
        assert (fake_home / ".bashrc").read_text() == ""

    def test_candidate_order(self, fake_home):
        (fake_home / ".profile").write_text("")
        (fake_home / ".bash_profile").write_text("")

        assert self.integrator(fake_home).find_shell_rc() == fake_home / ".bash_profile"

    def test_fish_config(self, fake_home, target):
        rc = fake_home / ".config" / "fish" / "config.fish"
        rc.parent.mkdir(parents=True)
        rc.write_text("")

        result = self.integrator(fake_home).integrate(target, setup=True)

        assert result.status == CONFIGURED
        assert f"fish_add_path {target}" in rc.read_text()

    def test_no_rc_file_falls_back_to_manual(self, fake_home, target):
        result = self.integrator(fake_home).integrate(target, setup=True)

        assert result.status == MANUAL
        assert "No shell startup file found" in result.message
        assert result.instructions == [f'export PATH="{target}:$PATH"']


class TestWindowsIntegration:
    """Registry-backed PATH handling through a fake store."""

    TARGET = r"C:\Users\Dev\AppData\Local\Programs\meldoc"

    def test_setup_updates_store_and_session(self, fake_home):
        store = FakePathStore(r"C:\Windows;C:\Git\bin")
        environ = {"PATH": r"C:\Windows"}
        integrator = PathIntegrator(
            "meldoc", PlatformTag("windows", "amd64"), home=fake_home, environ=environ, store=store
        )

        result = integrator.integrate(self.TARGET, setup=True)

        assert result.status == CONFIGURED
        assert store.value == rf"C:\Windows;C:\Git\bin;{self.TARGET}"
        assert environ["PATH"] == rf"C:\Windows;{self.TARGET}"

    def test_setup_twice_writes_once(self, fake_home):
        store = FakePathStore(r"C:\Windows")
        environ = {"PATH": r"C:\Windows"}
        first = PathIntegrator(
            "meldoc", PlatformTag("windows", "amd64"), home=fake_home, environ=environ, store=store
        ).integrate(self.TARGET, setup=True)
        second = PathIntegrator(
            "meldoc", PlatformTag("windows", "amd64"), home=fake_home,
            environ={"PATH": r"C:\Windows"}, store=store,
        ).integrate(self.TARGET, setup=True)

        assert first.status == CONFIGURED
        assert second.status == ALREADY_CONFIGURED
        assert len(store.writes) == 1

    def test_registry_failure_falls_back_to_manual(self, fake_home, mocker):
        store = mocker.Mock()
        store.read.side_effect = PermissionError("Access is denied")
        integrator = PathIntegrator(
            "meldoc", PlatformTag("windows", "amd64"), home=fake_home,
            environ={"PATH": ""}, store=store,
        )

        result = integrator.integrate(self.TARGET, setup=True)

        assert result.status == MANUAL
        assert "SetEnvironmentVariable" in result.instructions[0]
