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
"""Unit test configuration."""
import typing
import io
import os
import os.path
import tarfile

import pytest

import libjailconf.Config.Host
import libjailconf.Host
import libjailconf.Logger
import libjailconf.errors

RELEASE_NAME = "14.1-RELEASE"

BASE_ARCHIVE_FILES = {
    "./etc/rc.conf": b"sendmail_enable=\"NONE\"\n",
    "./bin/sh": b"#!/bin/sh\n",
    "./COPYRIGHT": b"FreeBSD\n"
}


class MockedHost(libjailconf.Host.Host):
    """Host that records chflags invocations instead of executing them."""

    cleared_flags: typing.List[str]
    fail_clear_flags: bool = False

    def __init__(self, *args: typing.Any, **kwargs: typing.Any) -> None:
        self.cleared_flags = []
        super().__init__(*args, **kwargs)

    def clear_flags(self, path: str) -> None:
        """Pretend to clear the file flags of a directory tree."""
        self.cleared_flags.append(path)
        if self.fail_clear_flags is True:
            raise libjailconf.errors.ClearFlagsFailed(
                path=path,
                reason="chflags: Operation not supported",
                logger=self.logger
            )


def create_base_archive(
    path: str,
    files: typing.Dict[str, bytes]
) -> None:
    """Write an xz compressed tarball with the given files."""
    directories: typing.List[str] = []
    for name in files.keys():
        directory = os.path.dirname(name)
        while directory not in ["", ".", ".."] + directories:
            directories.append(directory)
            directory = os.path.dirname(directory)

    with tarfile.open(path, "w:xz") as tar:
        for directory in sorted(directories):
            tar_info = tarfile.TarInfo(directory)
            tar_info.type = tarfile.DIRTYPE
            tar_info.mode = 0o755
            tar.addfile(tar_info)
        for name, data in files.items():
            tar_info = tarfile.TarInfo(name)
            tar_info.size = len(data)
            tar_info.mode = 0o644
            tar.addfile(tar_info, io.BytesIO(data))


@pytest.fixture
def logger() -> 'libjailconf.Logger.Logger':
    """Make the libjailconf.Logger available to the tests."""
    return libjailconf.Logger.Logger(color=False)


@pytest.fixture
def host_config(
    tmp_path: typing.Any,
    logger: 'libjailconf.Logger.Logger'
) -> 'libjailconf.Config.Host.HostConfig':
    """Return a HostConfig with all paths in a temporary directory."""
    root = str(tmp_path.resolve())
    return libjailconf.Config.Host.HostConfig(
        data=dict(
            conf_dir=os.path.join(root, "jail.conf.d"),
            root_dir=os.path.join(root, "jails"),
            base_dir=os.path.join(root, "base"),
            main_jail_conf=os.path.join(root, "jail.conf")
        ),
        logger=logger
    )


@pytest.fixture
def host(
    host_config: 'libjailconf.Config.Host.HostConfig',
    logger: 'libjailconf.Logger.Logger'
) -> MockedHost:
    """Return a prepared host with empty jailconf directories."""
    for directory in [
        host_config.conf_dir,
        host_config.root_dir,
        host_config.base_dir
    ]:
        os.makedirs(directory)
    return MockedHost(config=host_config, logger=logger)


@pytest.fixture
def release_name() -> str:
    """Return the name of the release used in the tests."""
    return RELEASE_NAME


@pytest.fixture
def base_archive(host: MockedHost, release_name: str) -> str:
    """Provide a small base.txz of the test release."""
    directory = os.path.join(host.config.base_dir, release_name)
    os.makedirs(directory)
    path = os.path.join(directory, "base.txz")
    create_base_archive(path, BASE_ARCHIVE_FILES)
    return path


@pytest.fixture
def write_config(
    host: MockedHost
) -> typing.Callable[[str, typing.Union[str, bytes]], str]:
    """Return a helper that puts a file into the jail config directory."""
    def _write_config(
        filename: str,
        content: typing.Union[str, bytes]=b""
    ) -> str:
        path = host.get_conf_path(filename)
        if isinstance(content, str):
            content = content.encode("UTF-8")
        with open(path, "wb") as f:
            f.write(content)
        return path
    return _write_config
