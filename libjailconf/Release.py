# Copyright (c) 2017-2019, Stefan Grönke
# Copyright (c) 2014-2018, iocage
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
"""jailconf base release module."""
import typing
import os
import posixpath
import re
import shutil
import urllib.error
import urllib.parse
import urllib.request

import libjailconf.errors
import libjailconf.events
import libjailconf.helpers
import libjailconf.helpers_object

# MyPy
import libjailconf.Host  # noqa: F401
import libjailconf.Logger  # noqa: F401

ARCHIVE_NAME = "base.txz"
SUPPORTED_URL_SCHEMES = ("https", "http", "ftp")

_release_name_pattern = re.compile(r"^[0-9A-Za-z][0-9A-Za-z._\-]*$")


def get_version_from_url(
    url: str,
    logger: typing.Optional['libjailconf.Logger.Logger']=None
) -> str:
    """
    Return the release version a base archive URL points to.

    The version is the name of the directory containing the archive.

    Usage:
        >>> get_version_from_url(
        ...     "https://download.freebsd.org/ftp/releases/"
        ...     "amd64/amd64/14.1-RELEASE/base.txz"
        ... )
        '14.1-RELEASE'
    """
    parsed_url = urllib.parse.urlparse(url)
    if parsed_url.scheme not in SUPPORTED_URL_SCHEMES:
        raise libjailconf.errors.InvalidDownloadURL(
            url=url,
            reason=f"unsupported URL scheme '{parsed_url.scheme}'",
            logger=logger
        )

    version = posixpath.basename(posixpath.dirname(parsed_url.path))
    if version.endswith("-RELEASE") is False:
        raise libjailconf.errors.InvalidDownloadURL(
            url=url,
            reason=f"invalid version '{version}' (expected *-RELEASE)",
            logger=logger
        )
    return version


class ReleaseGenerator:
    """
    A base release that jails are created from.

    Releases are stored as ``<base_dir>/<name>/base.txz`` on the host.
    """

    _name: str

    def __init__(
        self,
        name: str,
        host: typing.Optional['libjailconf.Host.HostGenerator']=None,
        logger: typing.Optional['libjailconf.Logger.Logger']=None
    ) -> None:
        self.logger = libjailconf.helpers_object.init_logger(self, logger)
        self.host = libjailconf.helpers_object.init_host(self, host)
        self.name = name

    @property
    def name(self) -> str:
        """Return the release name."""
        return self._name

    @name.setter
    def name(self, value: str) -> None:
        """Set the release name after validating it."""
        if isinstance(value, str) is False:
            raise libjailconf.errors.InvalidReleaseName(
                name=str(value),
                logger=self.logger
            )
        if _release_name_pattern.match(value) is None:
            raise libjailconf.errors.InvalidReleaseName(
                name=value,
                logger=self.logger
            )
        self._name = value

    @property
    def directory(self) -> str:
        """Return the directory the releases base archive is stored in."""
        return os.path.join(self.host.config.base_dir, self.name)

    @property
    def archive_path(self) -> str:
        """Return the path of the releases base archive."""
        return os.path.join(self.directory, ARCHIVE_NAME)

    @property
    def fetched(self) -> bool:
        """Return True if the base archive was downloaded."""
        return os.path.isfile(self.archive_path) is True

    def require_fetched(self) -> None:
        """Raise BaseArchiveNotFound when the archive was not downloaded."""
        if self.fetched is True:
            return
        raise libjailconf.errors.BaseArchiveNotFound(
            version=self.name,
            archive_path=self.archive_path,
            logger=self.logger
        )

    def available(self, url: str) -> bool:
        """Return True if the base archive is available at the URL."""
        try:
            request = urllib.request.Request(url, method="HEAD")
            resource = urllib.request.urlopen(request)  # nosec: scheme checked
            return (resource.getcode() == 200) is True
        except urllib.error.URLError:
            pass
        return False

    def fetch(
        self,
        url: str,
        event_scope: typing.Optional['libjailconf.events.Scope']=None
    ) -> typing.Generator['libjailconf.events.JailconfEvent', None, None]:
        """
        Download the base archive of the release.

        The HTTP response is checked before anything is written to the base
        directory. Partial downloads are removed.

        Args:

            url (str):

                URL of the base.txz archive.

            event_scope (libjailconf.events.Scope): (optional)

                Pass on the event stack for use in higher order functions.
        """
        events = libjailconf.events
        fetchReleaseEvent = events.FetchRelease(
            release=self,
            scope=event_scope
        )
        releaseDownloadEvent = events.ReleaseDownload(
            release=self,
            scope=fetchReleaseEvent.scope
        )

        yield fetchReleaseEvent.begin()

        if self.fetched is True:
            self.logger.verbose(
                f"{self.archive_path} was already downloaded"
            )
            yield fetchReleaseEvent.skip(message="already downloaded")
            return

        yield releaseDownloadEvent.begin()
        try:
            self._download(url, releaseDownloadEvent)
        except Exception as e:
            yield from releaseDownloadEvent.fail_generator(e)
            yield from fetchReleaseEvent.fail_generator(e)
            raise e
        yield releaseDownloadEvent.end()

        self.logger.verbose(
            f"Base system {self.name} was downloaded to {self.archive_path}"
        )
        yield fetchReleaseEvent.end()

    def _download(
        self,
        url: str,
        event: 'libjailconf.events.JailconfEvent'
    ) -> None:
        get_version_from_url(url, logger=self.logger)
        self.logger.debug(f"Starting download of {url}")

        try:
            response = urllib.request.urlopen(url)  # nosec: scheme checked
        except urllib.error.HTTPError as http_error:
            raise libjailconf.errors.DownloadFailed(
                url=url,
                code=http_error.code,
                logger=self.logger
            )
        except urllib.error.URLError as url_error:
            raise libjailconf.errors.DownloadFailed(
                url=url,
                reason=str(url_error.reason),
                logger=self.logger
            )

        with response:
            status = response.getcode()
            if (status < 200) or (status >= 300):
                raise libjailconf.errors.DownloadFailed(
                    url=url,
                    code=status,
                    logger=self.logger
                )
            self._prepare_directory(event)
            self._save(url, response, event)

        self.logger.verbose(f"{url} was saved to {self.archive_path}")

    def _prepare_directory(
        self,
        event: 'libjailconf.events.JailconfEvent'
    ) -> None:
        if os.path.isdir(self.directory) is True:
            return
        try:
            libjailconf.helpers.makedirs_safe(
                self.directory,
                base=self.host.config.base_dir,
                logger=self.logger
            )
        except OSError as e:
            raise libjailconf.errors.DirectoryCreationFailed(
                directory=self.directory,
                reason=str(e),
                logger=self.logger
            )
        event.add_rollback_step(self._remove_directory)

    def _save(
        self,
        url: str,
        response: typing.BinaryIO,
        event: 'libjailconf.events.JailconfEvent'
    ) -> None:
        partial_path = f"{self.archive_path}.part"
        event.add_rollback_step(lambda: self._remove_file(partial_path))
        try:
            with open(partial_path, "wb") as f:
                shutil.copyfileobj(response, f)
            os.rename(partial_path, self.archive_path)
        except OSError as e:
            raise libjailconf.errors.DownloadFailed(
                url=url,
                reason=str(e),
                logger=self.logger
            )

    def _remove_file(self, path: str) -> None:
        if os.path.isfile(path) is False:
            return
        self.logger.verbose(f"Removing incomplete download {path}")
        os.remove(path)

    def _remove_directory(self) -> None:
        if os.path.isdir(self.directory) is False:
            return
        self.logger.verbose(f"Removing {self.directory}")
        os.rmdir(self.directory)

    def __str__(self) -> str:
        """Return the release name."""
        return self.name


class Release(ReleaseGenerator):
    """Release with synchronous interfaces."""

    def fetch(  # noqa: T484
        self,
        url: str,
        event_scope: typing.Optional['libjailconf.events.Scope']=None
    ) -> typing.List['libjailconf.events.JailconfEvent']:
        """Download the base archive synchronously."""
        return list(ReleaseGenerator.fetch(
            self,
            url=url,
            event_scope=event_scope
        ))
