# Copyright (c) 2017-2019, Stefan Grönke
# All rights reserved.
#
# Redistribution and use in source and binary forms, with or without
# modification, are permitted providing that the following conditions
# are met:
# 1. Redistributions of source code must retain the above copyright
#    notice, this list of conditions and the following disclaimer.
# 2. Redistributions in binary form must reproduce the above copyright
#    notice, this list of conditions and the following disclaimer in the
#    documentation and/or other materials provided with the distribution.
#
# THIS SOFTWARE IS PROVIDED BY THE AUTHOR ``AS IS'' AND ANY EXPRESS OR
# IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE IMPLIED
# WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE
# ARE DISCLAIMED.  IN NO EVENT SHALL THE AUTHOR BE LIABLE FOR ANY
# DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL
# DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF SUBSTITUTE GOODS
# OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION)
# HOWEVER CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN CONTRACT,
# STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING
# IN ANY WAY OUT OF THE USE OF THIS SOFTWARE, EVEN IF ADVISED OF THE
# POSSIBILITY OF SUCH DAMAGE.
"""Unit tests for the Release module."""
import typing
import io
import os
import os.path
import urllib.error
import urllib.request

import pytest

import libjailconf.Release
import libjailconf.errors
import libjailconf.Logger

import conftest

RELEASE_URL = (
    "https://download.freebsd.org/ftp/releases/amd64/amd64/"
    "14.1-RELEASE/base.txz"
)


class FakeResponse(io.BytesIO):
    """In-memory replacement of an urllib response."""

    def __init__(self, data: bytes, code: int=200) -> None:
        self.code = code
        super().__init__(data)

    def getcode(self) -> int:
        """Return the HTTP status code."""
        return self.code


class TestReleaseUrl(object):
    """Run unit tests of the release version detection."""

    def test_version_from_url(
        self,
        logger: 'libjailconf.Logger.Logger'
    ) -> None:
        """Test that the version is the directory containing the archive."""
        version = libjailconf.Release.get_version_from_url(
            RELEASE_URL,
            logger=logger
        )
        assert version == "14.1-RELEASE"

    @pytest.mark.parametrize("url", [
        "file:///tmp/14.1-RELEASE/base.txz",
        "https://download.freebsd.org/ftp/snapshots/15.0-CURRENT/base.txz",
        "https://download.freebsd.org/base.txz",
        "not a url"
    ])
    def test_invalid_url(
        self,
        url: str,
        logger: 'libjailconf.Logger.Logger'
    ) -> None:
        """Test that unsupported URLs raise InvalidDownloadURL."""
        with pytest.raises(libjailconf.errors.InvalidDownloadURL):
            libjailconf.Release.get_version_from_url(url, logger=logger)

    def test_invalid_release_name(
        self,
        host: 'conftest.MockedHost',
        logger: 'libjailconf.Logger.Logger'
    ) -> None:
        """Test that release names cannot escape the base directory."""
        with pytest.raises(libjailconf.errors.InvalidReleaseName):
            libjailconf.Release.Release(
                name="../14.1-RELEASE",
                host=host,
                logger=logger
            )


class TestReleaseFetch(object):
    """Run base archive download unit tests."""

    @pytest.fixture
    def release(
        self,
        host: 'conftest.MockedHost',
        logger: 'libjailconf.Logger.Logger'
    ) -> 'libjailconf.Release.Release':
        """Return the release of the download URL."""
        return libjailconf.Release.Release(
            name="14.1-RELEASE",
            host=host,
            logger=logger
        )

    def test_fetch(
        self,
        monkeypatch: typing.Any,
        release: 'libjailconf.Release.Release'
    ) -> None:
        """Test that the archive is stored in the release directory."""
        requested_urls = []

        def _urlopen(url: str) -> FakeResponse:
            requested_urls.append(url)
            return FakeResponse(b"base system")

        monkeypatch.setattr(urllib.request, "urlopen", _urlopen)

        assert release.fetched is False
        events = release.fetch(url=RELEASE_URL)

        assert requested_urls == [RELEASE_URL]
        assert release.fetched is True
        assert os.listdir(release.directory) == ["base.txz"]
        with open(release.archive_path, "rb") as f:
            assert f.read() == b"base system"
        assert events[-1].type == "FetchRelease"
        assert events[-1].done is True

    def test_fetch_is_skipped_when_downloaded(
        self,
        monkeypatch: typing.Any,
        release: 'libjailconf.Release.Release',
        base_archive: str
    ) -> None:
        """Test that existing archives are not downloaded again."""
        def _urlopen(url: str) -> FakeResponse:
            raise AssertionError("unexpected download")

        monkeypatch.setattr(urllib.request, "urlopen", _urlopen)

        events = release.fetch(url=RELEASE_URL)
        assert events[-1].skipped is True
        assert release.archive_path == base_archive

    def test_http_status(
        self,
        monkeypatch: typing.Any,
        release: 'libjailconf.Release.Release'
    ) -> None:
        """Test that nothing is written when the server responds an error."""
        monkeypatch.setattr(
            urllib.request,
            "urlopen",
            lambda url: FakeResponse(b"<html>moved</html>", code=304)
        )

        with pytest.raises(libjailconf.errors.DownloadFailed) as e:
            release.fetch(url=RELEASE_URL)

        assert "HTTP 304" in str(e.value)
        assert os.path.exists(release.directory) is False

    def test_http_error(
        self,
        monkeypatch: typing.Any,
        release: 'libjailconf.Release.Release'
    ) -> None:
        """Test that HTTP errors raise DownloadFailed."""
        def _urlopen(url: str) -> FakeResponse:
            raise urllib.error.HTTPError(url, 404, "Not Found", {}, None)

        monkeypatch.setattr(urllib.request, "urlopen", _urlopen)

        with pytest.raises(libjailconf.errors.DownloadFailed) as e:
            release.fetch(url=RELEASE_URL)

        assert "HTTP 404" in str(e.value)
        assert os.path.exists(release.directory) is False

    def test_interrupted_download(
        self,
        monkeypatch: typing.Any,
        release: 'libjailconf.Release.Release'
    ) -> None:
        """Test that partial downloads are removed."""
        class BrokenResponse(FakeResponse):

            def read(self, *args: typing.Any) -> bytes:
                raise ConnectionResetError("connection reset by peer")

        monkeypatch.setattr(
            urllib.request,
            "urlopen",
            lambda url: BrokenResponse(b"")
        )

        with pytest.raises(libjailconf.errors.DownloadFailed):
            release.fetch(url=RELEASE_URL)

        assert release.fetched is False
        assert os.path.exists(release.directory) is False

    def test_stale_partial_download(
        self,
        monkeypatch: typing.Any,
        release: 'libjailconf.Release.Release'
    ) -> None:
        """Test that a leftover partial download does not block fetching."""
        os.makedirs(release.directory)
        with open(f"{release.archive_path}.part", "wb") as f:
            f.write(b"incomplete")

        monkeypatch.setattr(
            urllib.request,
            "urlopen",
            lambda url: FakeResponse(b"base system")
        )

        release.fetch(url=RELEASE_URL)

        assert release.fetched is True
        assert os.listdir(release.directory) == ["base.txz"]
        with open(release.archive_path, "rb") as f:
            assert f.read() == b"base system"

    def test_require_fetched(
        self,
        release: 'libjailconf.Release.Release'
    ) -> None:
        """Test that a missing archive raises BaseArchiveNotFound."""
        with pytest.raises(libjailconf.errors.BaseArchiveNotFound):
            release.require_fetched()
