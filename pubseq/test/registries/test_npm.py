from __future__ import annotations

from pathlib import Path

import pytest

import pubseq.registries.npm as npm_mod
from pubseq.core.result import Err, Ok, Result
from pubseq.plan.model import Package, Registry
from pubseq.platform.http import HttpError, MockHttpClient
from pubseq.platform.process import ProcessError
from pubseq.registries.base import Credential
from pubseq.registries.errors import (
    AuthenticationFailed,
    PackageRejected,
    TransientNetworkError,
    VersionAlreadyExists,
)
from pubseq.registries.npm import NpmClient, dist_tag_for, npmrc_content

NPM = Registry(id="npm", kind="npm", token_env="NPM_TOKEN", publish_args=("--access", "public"))
CRED = Credential(registry="npm", token="npm_secret")


class _Recorder:
    """Fake run_process that also captures the npmrc while it still exists."""

    def __init__(self, result: Result[str, ProcessError] | None = None) -> None:
        self.result = result or Ok("+ ywasm@0.17.0")
        self.cmd: list[str] = []
        self.cwd: Path | None = None
        self.env: dict[str, str] | None = None
        self.npmrc = ""

    def __call__(
        self,
        cmd: list[str],
        cwd: Path,
        env: dict[str, str] | None = None,
        *,
        timeout: float | None = None,
    ) -> Result[str, ProcessError]:
        self.cmd, self.cwd, self.env = cmd, cwd, env
        userconfig = Path(cmd[cmd.index("--userconfig") + 1])
        self.npmrc = userconfig.read_text(encoding="utf-8")
        return self.result


@pytest.fixture
def pkg(tmp_path: Path) -> Package:
    return Package(name="ywasm", version="0.17.0", path=tmp_path / "ywasm")


def _install(monkeypatch: pytest.MonkeyPatch, rec: _Recorder) -> _Recorder:
    monkeypatch.setattr(npm_mod, "run_process", rec)
    monkeypatch.setattr(npm_mod.shutil, "which", lambda name: f"/usr/bin/{name}")
    return rec


def test_npmrc_content() -> None:
    assert npmrc_content("https://registry.npmjs.org") == (
        "registry=https://registry.npmjs.org/\n"
        "//registry.npmjs.org/:_authToken=${NODE_AUTH_TOKEN}\n"
    )


def test_npmrc_content_with_path() -> None:
    content = npmrc_content("https://npm.example.com/api/npm")
    assert "//npm.example.com/api/npm/:_authToken=${NODE_AUTH_TOKEN}" in content


@pytest.mark.parametrize(
    ("version", "tag"),
    [("0.17.0", None), ("1.0.0-beta.2", "beta"), ("1.0.0-rc.1", "rc"), ("1.0.0-1", "next")],
)
def test_dist_tag_for(version: str, tag: str | None) -> None:
    assert dist_tag_for(version) == tag


class TestPublish:
    def test_token_only_in_env(self, monkeypatch: pytest.MonkeyPatch, pkg: Package) -> None:
        rec = _install(monkeypatch, _Recorder())
        artifact = pkg.path / "pkg"

        result = NpmClient(MockHttpClient()).publish(artifact, pkg, NPM, CRED)

        assert isinstance(result, Ok)
        assert rec.cwd == artifact
        assert rec.cmd[:2] == ["npm", "publish"]
        assert rec.cmd[-2:] == ["--access", "public"]
        assert "--registry" in rec.cmd
        assert "npm_secret" not in " ".join(rec.cmd)
        assert "npm_secret" not in rec.npmrc
        assert "${NODE_AUTH_TOKEN}" in rec.npmrc
        assert rec.env is not None and rec.env["NODE_AUTH_TOKEN"] == "npm_secret"

    def test_npmrc_is_removed(self, monkeypatch: pytest.MonkeyPatch, pkg: Package) -> None:
        rec = _install(monkeypatch, _Recorder())

        NpmClient(MockHttpClient()).publish(pkg.path, pkg, NPM, CRED)

        userconfig = Path(rec.cmd[rec.cmd.index("--userconfig") + 1])
        assert not userconfig.exists()

    def test_prerelease_gets_tag(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        rec = _install(monkeypatch, _Recorder())
        pkg = Package(name="ywasm", version="0.18.0-beta.1", path=tmp_path)

        NpmClient(MockHttpClient()).publish(tmp_path, pkg, NPM, CRED)

        i = rec.cmd.index("--tag")
        assert rec.cmd[i + 1] == "beta"

    def test_dry_run(self, monkeypatch: pytest.MonkeyPatch, pkg: Package) -> None:
        rec = _install(monkeypatch, _Recorder())

        result = NpmClient(MockHttpClient()).publish(pkg.path, pkg, NPM, None, dry_run=True)

        assert isinstance(result, Ok)
        assert result.value.dry_run
        assert "--dry-run" in rec.cmd

    def test_custom_endpoint(self, monkeypatch: pytest.MonkeyPatch, pkg: Package) -> None:
        rec = _install(monkeypatch, _Recorder())
        reg = Registry(
            id="github",
            kind="npm",
            token_env="GITHUB_TOKEN",
            endpoint="https://npm.pkg.github.com/",
        )

        NpmClient(MockHttpClient()).publish(pkg.path, pkg, reg, CRED)

        i = rec.cmd.index("--registry")
        assert rec.cmd[i + 1] == "https://npm.pkg.github.com/"
        assert "//npm.pkg.github.com/:_authToken" in rec.npmrc

    def test_missing_npm(self, monkeypatch: pytest.MonkeyPatch, pkg: Package) -> None:
        monkeypatch.setattr(npm_mod.shutil, "which", lambda name: None)

        result = NpmClient(MockHttpClient()).publish(pkg.path, pkg, NPM, CRED)

        assert isinstance(result, Err)
        assert isinstance(result.error, PackageRejected)
        assert "npm: not found" in result.error.details

    @pytest.mark.parametrize(
        ("stderr", "expected"),
        [
            (
                "npm ERR! code EPUBLISHCONFLICT\nnpm ERR! cannot publish over existing version",
                VersionAlreadyExists,
            ),
            (
                "npm ERR! 403 You cannot publish over the previously published versions: 0.17.0.",
                VersionAlreadyExists,
            ),
            ("npm ERR! code ENEEDAUTH\nnpm ERR! need auth", AuthenticationFailed),
            ("npm ERR! code E401\nnpm ERR! Unable to authenticate", AuthenticationFailed),
            ("npm ERR! code ETIMEDOUT\nnpm ERR! network request failed", TransientNetworkError),
            ("npm ERR! code E503 Service Unavailable", TransientNetworkError),
            ("npm ERR! code E400\nnpm ERR! invalid package name", PackageRejected),
        ],
    )
    def test_failure_classification(
        self,
        monkeypatch: pytest.MonkeyPatch,
        pkg: Package,
        stderr: str,
        expected: type,
    ) -> None:
        _install(
            monkeypatch,
            _Recorder(Err(ProcessError(("npm", "publish"), 1, stdout="", stderr=stderr))),
        )

        result = NpmClient(MockHttpClient()).publish(pkg.path, pkg, NPM, CRED)

        assert isinstance(result, Err)
        assert isinstance(result.error, expected)


class TestIsResolvable:
    def test_version_listed(self, pkg: Package) -> None:
        http = MockHttpClient()
        http.set_json("https://registry.npmjs.org/ywasm", {"versions": {"0.17.0": {}}})

        assert NpmClient(http).is_resolvable(pkg, NPM) == Ok(True)

    def test_version_not_listed(self, pkg: Package) -> None:
        http = MockHttpClient()
        http.set_json("https://registry.npmjs.org/ywasm", {"versions": {"0.16.0": {}}})

        assert NpmClient(http).is_resolvable(pkg, NPM) == Ok(False)

    def test_unpublished_package(self, pkg: Package) -> None:
        assert NpmClient(MockHttpClient()).is_resolvable(pkg, NPM) == Ok(False)

    def test_scoped_name(self, tmp_path: Path) -> None:
        http = MockHttpClient()
        scoped = Package(name="@y-crdt/ywasm", version="1.0.0", path=tmp_path)
        http.set_json("https://registry.npmjs.org/@y-crdt%2Fywasm", {"versions": {"1.0.0": {}}})

        assert NpmClient(http).is_resolvable(scoped, NPM) == Ok(True)

    def test_lookup_error(self, pkg: Package) -> None:
        http = MockHttpClient()
        http.set_json("https://registry.npmjs.org/ywasm", HttpError("u", 0, "timed out"))

        assert isinstance(NpmClient(http).is_resolvable(pkg, NPM), Err)
